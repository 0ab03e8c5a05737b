# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Inbound request validation.

Pure functions, no I/O. They run before any network call so that malformed
input never reaches the registry or the relay.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import InvalidIdentifierError, MethodNotAllowedError, MissingFieldError, ValidationError
from .models import EmailAttachment, EmailMessage, SendEmailPayload

SIREN_LENGTH = 9
SIRET_LENGTH = 14

REQUIRED_EMAIL_FIELDS = ("to", "subject", "body")


@dataclass(frozen=True)
class Identifier:
    """A validated SIREN (9 digits) or SIRET (14 digits)."""

    value: str

    @property
    def kind(self) -> str:
        return "siret" if len(self.value) == SIRET_LENGTH else "siren"

    @property
    def siren(self) -> str:
        """SIREN of the company; the first 9 digits of a SIRET."""
        return self.value[:SIREN_LENGTH]

    @property
    def siret(self) -> str | None:
        return self.value if self.kind == "siret" else None

    def __str__(self) -> str:
        return self.value


def _length_reason(allowed_lengths: tuple[int, ...]) -> str:
    lengths = sorted(set(allowed_lengths))
    if len(lengths) == 1:
        return f"must be {lengths[0]} digits"
    return "must be " + " or ".join(str(n) for n in lengths) + " digits"


def validate_identifier(candidate: Any, allowed_lengths: Iterable[int] = (SIREN_LENGTH, SIRET_LENGTH)) -> Identifier:
    """Check that ``candidate`` is a SIREN or SIRET.

    Spaces are removed first so that ``"552 100 554"`` is accepted.

    Args:
        candidate: Raw identifier taken from the request path.
        allowed_lengths: Accepted lengths, ``(9, 14)`` by default.

    Returns:
        The validated :class:`Identifier`.

    Raises:
        InvalidIdentifierError: If the value is not purely numeric or has a
            length outside ``allowed_lengths``.
    """
    lengths = tuple(allowed_lengths)
    reason = _length_reason(lengths)
    if not isinstance(candidate, str):
        raise InvalidIdentifierError(str(candidate), reason)
    value = "".join(candidate.split())
    # str.isdigit() accepts non-ASCII digits such as "²"
    if not value.isascii() or not value.isdigit() or len(value) not in lengths:
        raise InvalidIdentifierError(candidate, reason)
    return Identifier(value)


def ensure_post(method: str) -> None:
    """Reject any verb other than POST on the send-email endpoint."""
    if method.upper() != "POST":
        raise MethodNotAllowedError(method.upper())


def _text_field(data: Mapping[str, Any], name: str) -> str | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Field '{name}' must be a string")
    return value if value.strip() else None


def validate_email_request(payload: SendEmailPayload | Mapping[str, Any]) -> EmailMessage:
    """Turn a decoded send-email body into an :class:`EmailMessage`.

    Required fields are checked in the order ``to``, ``subject``, ``body``;
    the first one missing or blank is reported. An attachment is optional
    but ``attachment_name`` and ``attachment_data`` must come together.

    Raises:
        MissingFieldError: For the first required field that is absent.
        ValidationError: If a field has a non-string value.
    """
    data = payload.model_dump() if isinstance(payload, SendEmailPayload) else dict(payload)

    values: dict[str, str] = {}
    for name in REQUIRED_EMAIL_FIELDS:
        value = _text_field(data, name)
        if value is None:
            raise MissingFieldError(name)
        values[name] = value

    filename = _text_field(data, "attachment_name")
    content = _text_field(data, "attachment_data")
    attachment = None
    if filename or content:
        if not filename:
            raise MissingFieldError("attachment_name")
        if not content:
            raise MissingFieldError("attachment_data")
        attachment = EmailAttachment(
            filename=filename,
            base64_data=content,
            content_type=_text_field(data, "attachment_type"),
        )

    message = EmailMessage(to=values["to"], subject=values["subject"], body=values["body"], attachment=attachment)
    if not message.recipients:
        raise MissingFieldError("to")
    return message


__all__ = [
    "Identifier",
    "ensure_post",
    "validate_email_request",
    "validate_identifier",
]
