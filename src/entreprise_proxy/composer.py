# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""multipart/mixed message composition.

Builds the raw RFC 2045 message handed to the SMTP ``DATA`` command. The
output is fully determined by the message, the sender and the boundary:
headers come from an ordered list and lines always end with CRLF.

Layout::

    From / To / Subject / MIME-Version / Content-Type headers
    <blank line>
    --boundary            text/plain part
    --boundary            attachment part (optional)
    --boundary--

Example:
    Composing a message::

        raw = compose_message(message, sender="noreply@example.com")
        await transport.send(raw, "noreply@example.com", message.recipients)
"""

from __future__ import annotations

import mimetypes
import quopri
import re
import secrets
from email.header import Header

from .errors import ValidationError
from .models import EmailAttachment, EmailMessage

CRLF = "\r\n"
BASE64_LINE_LENGTH = 76
# RFC 5322 limit, CRLF excluded
MAX_LINE_LENGTH = 998
DEFAULT_ATTACHMENT_TYPE = "application/pdf"

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
_DATA_URL_RE = re.compile(r"^data:(?P<type>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?;base64,", re.IGNORECASE)


def generate_boundary() -> str:
    return f"=_entreprise_proxy_{secrets.token_hex(16)}"


def _header_value(value: str) -> str:
    """Strip line breaks so a value cannot start a new header."""
    return " ".join(value.replace("\r", " ").replace("\n", " ").split())


def _encode_subject(subject: str) -> str:
    subject = _header_value(subject)
    if subject.isascii():
        return subject
    return Header(subject, "utf-8", header_name="Subject").encode(linesep=CRLF)


def sanitize_filename(filename: str) -> str:
    """Remove line breaks and double quotes from an attachment filename."""
    cleaned = filename.replace("\r", "").replace("\n", "").replace('"', "").strip()
    return cleaned or "attachment"


def _crlf(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", CRLF)


def wrap_base64(data: str, width: int = BASE64_LINE_LENGTH) -> list[str]:
    """Split base64 text into lines of at most ``width`` characters.

    Whitespace already present in ``data`` is dropped first.

    Raises:
        ValidationError: If ``data`` contains characters outside the base64
            alphabet.
    """
    compact = "".join(data.split())
    if not compact or not _BASE64_RE.match(compact):
        raise ValidationError("attachment_data is not valid base64")
    return [compact[i:i + width] for i in range(0, len(compact), width)]


def _split_data_url(attachment: EmailAttachment) -> tuple[str, str | None]:
    data = attachment.base64_data.strip()
    match = _DATA_URL_RE.match(data)
    if not match:
        return data, None
    return data[match.end():], match.group("type")


def attachment_content_type(attachment: EmailAttachment, data_url_type: str | None = None) -> str:
    """Declared type, then the data URL type, then a guess from the filename."""
    if attachment.content_type and "/" in attachment.content_type:
        return _header_value(attachment.content_type)
    if data_url_type:
        return data_url_type
    guessed, _encoding = mimetypes.guess_type(sanitize_filename(attachment.filename))
    return guessed or DEFAULT_ATTACHMENT_TYPE


def build_headers(message: EmailMessage, sender: str, boundary: str) -> list[tuple[str, str]]:
    """Top-level headers in emission order."""
    return [
        ("From", _header_value(sender)),
        ("To", _header_value(", ".join(message.recipients))),
        ("Subject", _encode_subject(message.subject)),
        ("MIME-Version", "1.0"),
        ("Content-Type", f'multipart/mixed; boundary="{boundary}"'),
    ]


def _text_part(body: str) -> list[str]:
    lf_body = body.replace("\r\n", "\n").replace("\r", "\n")
    if body.isascii() and all(len(line) <= MAX_LINE_LENGTH for line in lf_body.split("\n")):
        encoding = "7bit"
        payload = _crlf(lf_body)
    else:
        # quopri escapes bare CR, so encode LF-only text and convert afterwards
        encoding = "quoted-printable"
        payload = _crlf(quopri.encodestring(lf_body.encode("utf-8")).decode("ascii"))
    return [
        "Content-Type: text/plain; charset=utf-8",
        f"Content-Transfer-Encoding: {encoding}",
        "",
        payload,
    ]


def _attachment_part(attachment: EmailAttachment) -> list[str]:
    data, data_url_type = _split_data_url(attachment)
    filename = sanitize_filename(attachment.filename)
    content_type = attachment_content_type(attachment, data_url_type)
    return [
        f'Content-Type: {content_type}; name="{filename}"',
        "Content-Transfer-Encoding: base64",
        f'Content-Disposition: attachment; filename="{filename}"',
        "",
        *wrap_base64(data),
    ]


def compose_message(message: EmailMessage, sender: str, boundary: str | None = None) -> bytes:
    """Render ``message`` as a multipart/mixed byte string.

    Args:
        message: Validated message.
        sender: ``From`` address.
        boundary: Multipart boundary; generated when omitted.

    Raises:
        ValidationError: If the attachment payload is not base64.
    """
    boundary = boundary or generate_boundary()
    lines = [f"{name}: {value}" for name, value in build_headers(message, sender, boundary)]
    lines.append("")
    lines.append(f"--{boundary}")
    lines.extend(_text_part(message.body))
    if message.attachment is not None:
        lines.append(f"--{boundary}")
        lines.extend(_attachment_part(message.attachment))
    lines.append(f"--{boundary}--")
    return (CRLF.join(lines) + CRLF).encode("utf-8")


__all__ = [
    "BASE64_LINE_LENGTH",
    "build_headers",
    "compose_message",
    "generate_boundary",
    "sanitize_filename",
    "wrap_base64",
]
