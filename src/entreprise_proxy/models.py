# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the lookup and mail pipelines.

Models:
    - PostalAddress, RegistrationNumbers, CanonicalEntity: canonical company
      record returned to callers (camelCase on the wire)
    - SendEmailPayload: raw body accepted by the send-email endpoint
    - EmailAttachment, EmailMessage: validated message handed to the composer
    - StatusResponse, HealthResponse, InfoResponse: small API payloads
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN_NAME = "Nom Inconnu"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostalAddress(_CamelModel):
    """City and postal code of the company. Both empty when unknown."""

    city: str = ""
    postal_code: str = ""


class RegistrationNumbers(_CamelModel):
    siren: str | None = None
    siret: str | None = None
    vat_number: str | None = None


class CanonicalEntity(_CamelModel):
    """Normalized company record, independent of the upstream payload shape.

    Attributes:
        legal_name: Resolved company name, ``UNKNOWN_NAME`` when none found.
        registration_numbers: SIREN, SIRET and intra-community VAT number.
        postal_address: Address picked from a single upstream location.
    """

    legal_name: Annotated[str, Field(description="Resolved legal name")] = UNKNOWN_NAME
    registration_numbers: RegistrationNumbers = Field(default_factory=RegistrationNumbers)
    postal_address: PostalAddress = Field(default_factory=PostalAddress)


class SendEmailPayload(BaseModel):
    """Body of ``POST /api/send-email``.

    Every field is optional at decode time so that a missing field yields a
    ``missing_field`` error rather than a schema error.
    """

    model_config = ConfigDict(extra="ignore")

    to: Any = None
    subject: Any = None
    body: Any = None
    attachment_name: Any = None
    attachment_data: Any = None
    attachment_type: Any = None


class EmailAttachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: Annotated[str, Field(min_length=1, description="Attachment filename")]
    base64_data: Annotated[str, Field(min_length=1, description="Base64 encoded content")]
    content_type: Annotated[str | None, Field(default=None, description="Declared MIME type")] = None


class EmailMessage(BaseModel):
    """Validated outbound message.

    Attributes:
        to: Recipient address(es), comma separated.
        subject: Message subject.
        body: Plain text body.
        attachment: Optional single attachment.
    """

    model_config = ConfigDict(frozen=True)

    to: Annotated[str, Field(min_length=1, description="Recipient address(es)")]
    subject: Annotated[str, Field(min_length=1, description="Email subject")]
    body: Annotated[str, Field(min_length=1, description="Plain text body")]
    attachment: EmailAttachment | None = None

    @property
    def recipients(self) -> list[str]:
        """Envelope recipients parsed from ``to``."""
        return [addr.strip() for addr in self.to.split(",") if addr.strip()]


class StatusResponse(BaseModel):
    status: str
    message: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    code: int = 200


class InfoResponse(BaseModel):
    status: str = "success"
    data: dict[str, Any] | None = None


__all__ = [
    "CanonicalEntity",
    "EmailAttachment",
    "EmailMessage",
    "HealthResponse",
    "InfoResponse",
    "PostalAddress",
    "RegistrationNumbers",
    "SendEmailPayload",
    "StatusResponse",
    "UNKNOWN_NAME",
]
