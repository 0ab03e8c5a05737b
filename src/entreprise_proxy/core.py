# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Request pipelines for company lookup and email relay.

:class:`EntrepriseProxy` wires the components together:

- lookup: validate identifier, fetch from the registry, normalize
- send: validate request, compose the MIME message, deliver via SMTP

It holds only the immutable configuration and stateless collaborators, so
one instance safely serves concurrent requests.

Example:
    Using the pipelines directly::

        proxy = EntrepriseProxy(load_settings())
        entity = await proxy.lookup("55210055400013")
        await proxy.send_email({"to": "a@example.com", "subject": "Hi", "body": "..."})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .composer import compose_message
from .config_loader import ProxyConfig
from .errors import ConfigError, NotFoundError
from .logger import get_logger
from .models import CanonicalEntity, SendEmailPayload
from .normalizer import normalize
from .registry_client import RegistryClient
from .transport import MailTransport
from .validators import validate_email_request, validate_identifier


class EntrepriseProxy:
    """Central orchestrator for the lookup and mail pipelines.

    Attributes:
        config: Process-wide configuration, read-only.
        registry: Client used for registry lookups.
        transport: SMTP transport used for delivery.
    """

    def __init__(
        self,
        config: ProxyConfig,
        registry: RegistryClient | None = None,
        transport: MailTransport | None = None,
    ):
        self.config = config
        self.registry = registry or RegistryClient(config.registry)
        self.transport = transport or MailTransport(config.relay)
        self.logger = get_logger("EntrepriseProxy")

    async def lookup(self, candidate: str) -> CanonicalEntity:
        """Return the canonical record for a SIREN or SIRET.

        Raises:
            InvalidIdentifierError: Before any network call, if malformed.
            NotFoundError, UpstreamError, TransportError, DecodeError,
            ConfigError: As classified by the registry client and normalizer.
        """
        identifier = validate_identifier(candidate, self.config.registry.identifier_lengths)
        self.logger.info("Looking up %s %s", identifier.kind.upper(), identifier)
        try:
            raw = await self.registry.fetch(identifier)
        except NotFoundError:
            self.logger.info("No registry record for %s", identifier)
            raise
        entity = normalize(raw, identifier)
        self.logger.info("Resolved %s: %s (%s)", identifier, entity.legal_name, entity.postal_address.city)
        return entity

    async def send_email(self, payload: SendEmailPayload | Mapping[str, Any]) -> None:
        """Validate, compose and deliver one message.

        Raises:
            MissingFieldError, ValidationError: For invalid requests.
            ConfigError: If the relay is not configured.
            DeliveryError: If the relay rejects the message.
        """
        message = validate_email_request(payload)
        relay = self.config.relay
        if relay.missing:
            raise ConfigError(f"Relay settings missing: {', '.join(relay.missing)}")
        sender = relay.from_address
        raw = compose_message(message, sender=sender)
        self.logger.info(
            "Sending email to %d recipient(s)%s",
            len(message.recipients),
            " with attachment" if message.attachment else "",
        )
        await self.transport.send(raw, sender, message.recipients)


__all__ = ["EntrepriseProxy"]
