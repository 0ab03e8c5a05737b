import base64
import math
import re
from email import message_from_bytes, policy

import pytest

from entreprise_proxy.composer import build_headers, compose_message, sanitize_filename, wrap_base64
from entreprise_proxy.errors import ValidationError
from entreprise_proxy.models import EmailAttachment, EmailMessage

BOUNDARY = "BOUNDARY123"
SENDER = "noreply@example.com"


def _message(**kwargs):
    data = {"to": "dest@example.com", "subject": "Devis", "body": "Bonjour,\nVoici le devis."}
    data.update(kwargs)
    return EmailMessage(**data)


def _attachment_lines(raw: bytes) -> list[str]:
    text = raw.decode()
    part = text.split(f"--{BOUNDARY}\r\n")[2]
    payload = part.split("\r\n\r\n", 1)[1]
    payload = payload.split(f"--{BOUNDARY}--")[0]
    return [line for line in payload.split("\r\n") if line]


def test_header_order_is_fixed():
    headers = build_headers(_message(), SENDER, BOUNDARY)
    assert [name for name, _ in headers] == ["From", "To", "Subject", "MIME-Version", "Content-Type"]


def test_message_without_attachment_layout():
    raw = compose_message(_message(), SENDER, boundary=BOUNDARY)
    assert raw == (
        b"From: noreply@example.com\r\n"
        b"To: dest@example.com\r\n"
        b"Subject: Devis\r\n"
        b"MIME-Version: 1.0\r\n"
        b'Content-Type: multipart/mixed; boundary="BOUNDARY123"\r\n'
        b"\r\n"
        b"--BOUNDARY123\r\n"
        b"Content-Type: text/plain; charset=utf-8\r\n"
        b"Content-Transfer-Encoding: 7bit\r\n"
        b"\r\n"
        b"Bonjour,\r\nVoici le devis.\r\n"
        b"--BOUNDARY123--\r\n"
    )


def test_message_without_attachment_has_two_boundary_markers():
    raw = compose_message(_message(), SENDER, boundary=BOUNDARY).decode()
    markers = [line for line in raw.split("\r\n") if line.startswith(f"--{BOUNDARY}")]
    assert markers == [f"--{BOUNDARY}", f"--{BOUNDARY}--"]

    parsed = message_from_bytes(raw.encode(), policy=policy.default)
    parts = list(parsed.iter_parts())
    assert len(parts) == 1
    assert parts[0].get_content_type() == "text/plain"


def test_attachment_of_200_chars_wraps_to_76():
    data = "A" * 200
    message = _message(attachment=EmailAttachment(filename="devis.pdf", base64_data=data))
    lines = _attachment_lines(compose_message(message, SENDER, boundary=BOUNDARY))

    assert len(lines) == math.ceil(200 / 76)
    assert all(len(line) <= 76 for line in lines)
    assert "".join(lines) == data
    assert lines[-1] == "A" * (200 - 2 * 76)


def test_attachment_part_headers_and_roundtrip():
    content = b"%PDF-1.4\n" + bytes(range(256)) * 2
    encoded = base64.b64encode(content).decode()
    message = _message(attachment=EmailAttachment(filename="devis.pdf", base64_data=encoded))
    raw = compose_message(message, SENDER, boundary=BOUNDARY)

    text = raw.decode()
    assert "Content-Type: application/pdf; name=\"devis.pdf\"\r\n" in text
    assert "Content-Transfer-Encoding: base64\r\n" in text
    assert 'Content-Disposition: attachment; filename="devis.pdf"\r\n' in text

    parsed = message_from_bytes(raw, policy=policy.default)
    attachments = list(parsed.iter_attachments())
    assert len(attachments) == 1
    assert attachments[0].get_filename() == "devis.pdf"
    assert attachments[0].get_content() == content


def test_attachment_filename_cannot_inject_headers():
    message = _message(
        attachment=EmailAttachment(filename='evil.pdf"\r\nBcc: victim@example.com', base64_data="QUJD")
    )
    text = compose_message(message, SENDER, boundary=BOUNDARY).decode()
    assert "\r\nBcc:" not in text
    assert 'filename="evil.pdfBcc: victim@example.com"' in text


def test_header_values_cannot_inject_headers():
    message = _message(subject="Hello\r\nBcc: victim@example.com")
    text = compose_message(message, SENDER, boundary=BOUNDARY).decode()
    assert "Subject: Hello Bcc: victim@example.com\r\n" in text
    assert "\r\nBcc:" not in text


def test_declared_and_data_url_types():
    declared = _message(attachment=EmailAttachment(filename="a.bin", base64_data="QUJD", content_type="image/png"))
    assert "Content-Type: image/png; name=\"a.bin\"" in compose_message(declared, SENDER, BOUNDARY).decode()

    data_url = _message(attachment=EmailAttachment(filename="a", base64_data="data:image/jpeg;base64,QUJD"))
    text = compose_message(data_url, SENDER, BOUNDARY).decode()
    assert "Content-Type: image/jpeg; name=\"a\"" in text
    assert "data:" not in text

    guessed = _message(attachment=EmailAttachment(filename="notes.txt", base64_data="QUJD"))
    assert "Content-Type: text/plain; name=\"notes.txt\"" in compose_message(guessed, SENDER, BOUNDARY).decode()


def test_non_ascii_body_and_subject():
    message = _message(subject="Réservation", body="Merci pour votre commande à Paris.")
    raw = compose_message(message, SENDER, boundary=BOUNDARY)
    raw.decode("ascii")

    parsed = message_from_bytes(raw, policy=policy.default)
    assert parsed["Subject"] == "Réservation"
    body = next(parsed.iter_parts())
    assert body["Content-Transfer-Encoding"] == "quoted-printable"
    assert body.get_content().strip() == "Merci pour votre commande à Paris."


def test_long_non_ascii_subject_folds_with_crlf():
    subject = "Réservation confirmée " * 6
    raw = compose_message(_message(subject=subject), SENDER, boundary=BOUNDARY)

    assert raw.count(b"\n") == raw.count(b"\r\n")
    header_block = raw.split(b"\r\n\r\n", 1)[0].decode("ascii")
    subject_lines = header_block.split("Subject: ", 1)[1].split("\r\nMIME-Version:")[0].split("\r\n")
    assert len(subject_lines) > 1
    assert all(line.startswith(" ") for line in subject_lines[1:])

    parsed = message_from_bytes(raw, policy=policy.default)
    assert parsed["Subject"] == " ".join(subject.split())


def test_ascii_body_with_overlong_line_uses_quoted_printable():
    body = "A" * 1200
    raw = compose_message(_message(body=body), SENDER, boundary=BOUNDARY)

    assert all(len(line) <= 998 for line in raw.split(b"\r\n"))
    parsed = message_from_bytes(raw, policy=policy.default)
    text_part = next(parsed.iter_parts())
    assert text_part["Content-Transfer-Encoding"] == "quoted-printable"
    assert text_part.get_content().strip() == body


def test_ascii_body_at_line_limit_stays_7bit():
    raw = compose_message(_message(body="A" * 998), SENDER, boundary=BOUNDARY)
    assert b"Content-Transfer-Encoding: 7bit\r\n" in raw


def test_generated_boundary_is_unique():
    first = compose_message(_message(), SENDER)
    second = compose_message(_message(), SENDER)
    pattern = re.compile(rb'boundary="([^"]+)"')
    assert pattern.search(first).group(1) != pattern.search(second).group(1)


def test_wrap_base64_strips_whitespace():
    assert wrap_base64("QUJD\nREVG\r\n", width=6) == ["QUJDRE", "VG"]


@pytest.mark.parametrize("data", ["not base64!", "QUJD$$", "   "])
def test_wrap_base64_rejects_invalid_data(data):
    with pytest.raises(ValidationError):
        wrap_base64(data)


def test_sanitize_filename():
    assert sanitize_filename("re\rport\n.pdf") == "report.pdf"
    assert sanitize_filename("\r\n") == "attachment"
