# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error taxonomy shared by the lookup and mail pipelines.

Every failure raised by the core derives from :class:`ProxyError` and carries
three things:

- ``code``: a stable machine-readable classification
- ``status_code``: the HTTP status the API layer answers with
- ``public_message``: the caller-safe text returned in the response body

The exception's own message (``str(exc)``) and any attached cause may hold
internal detail such as the raw upstream body or an SMTP reply. That detail
is logged and never sent back to the caller.
"""

from __future__ import annotations

from typing import Any


class ProxyError(Exception):
    """Base class for all classified failures of a single request."""

    code = "internal_error"
    status_code = 500
    public_message = "Internal server error"

    def to_response(self) -> dict[str, Any]:
        """Return the JSON body sent to the caller."""
        return {"error": self.public_message, "code": self.code}


class ValidationError(ProxyError):
    """Inbound data is malformed (identifier, email fields, JSON body)."""

    code = "invalid_request"
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)
        self.public_message = message


class InvalidIdentifierError(ValidationError):
    """The business identifier is not a 9 or 14 digit number."""

    code = "invalid_identifier"

    def __init__(self, identifier: str, reason: str = "must be 9 or 14 digits"):
        super().__init__(f"Identifier {reason}")
        self.identifier = identifier
        self.reason = reason


class MissingFieldError(ValidationError):
    """A required field of the send-email request is absent or empty."""

    code = "missing_field"

    def __init__(self, name: str):
        super().__init__(f"Missing required field: {name}")
        self.name = name

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["field"] = self.name
        return body


class MethodNotAllowedError(ProxyError):
    code = "method_not_allowed"
    status_code = 405
    public_message = "Method not allowed"

    def __init__(self, method: str):
        super().__init__(f"Method {method} not allowed")
        self.method = method


class NotFoundError(ProxyError):
    """The registry reports no entity for the identifier."""

    code = "not_found"
    status_code = 404
    public_message = "Company not found"


class UpstreamError(ProxyError):
    """The registry answered with an unexpected status code."""

    code = "upstream_error"
    public_message = "Registry service returned an error"

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Registry answered HTTP {status_code}")
        self.upstream_status = status_code
        self.body = body


class TransportError(ProxyError):
    """Network or timeout failure while reaching an upstream service."""

    code = "transport_error"
    public_message = "Registry service is unreachable"

    def __init__(self, cause: BaseException | str):
        super().__init__(f"Transport failure: {cause}")
        self.cause = cause


class DecodeError(ProxyError):
    """The registry payload could not be parsed."""

    code = "decode_error"
    public_message = "Registry response could not be read"

    def __init__(self, cause: BaseException | str):
        super().__init__(f"Invalid registry payload: {cause}")
        self.cause = cause


class ConfigError(ProxyError):
    """Required configuration (token, relay credentials) is missing."""

    code = "configuration_error"
    public_message = "Service is not configured"

    def __init__(self, message: str = "Missing configuration"):
        super().__init__(message)


class DeliveryError(ProxyError):
    """The relay rejected or dropped the message at some SMTP step.

    Attributes:
        step: One of ``connect``, ``authenticate``, ``mail``, ``rcpt``, ``data``.
        cause: The underlying exception.
    """

    code = "delivery_error"
    public_message = "Email could not be delivered"

    def __init__(self, step: str, cause: BaseException | str):
        super().__init__(f"SMTP {step} failed: {cause}")
        self.step = step
        self.cause = cause


__all__ = [
    "ConfigError",
    "DecodeError",
    "DeliveryError",
    "InvalidIdentifierError",
    "MethodNotAllowedError",
    "MissingFieldError",
    "NotFoundError",
    "ProxyError",
    "TransportError",
    "UpstreamError",
    "ValidationError",
]
