# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP client for the Societe.com company registry.

The client performs one authenticated GET per lookup and classifies the
outcome; it does not interpret the payload (see :mod:`normalizer`).

Endpoint paths by configured variant:

- ``etablissement``: ``etablissement/{siret}`` for a SIRET,
  ``entreprise/{siren}`` for a SIREN
- ``entreprise``: ``entreprise/{siren}`` for both
- ``exist``: ``entreprise/{siren}/exist``. This variant is an existence
  check and never returns an address.

Example:
    Fetching a raw registry record::

        client = RegistryClient(RegistryConfig(token="secret"))
        raw = await client.fetch(validate_identifier("55210055400013"))
"""

from __future__ import annotations

import asyncio

import aiohttp

from .config_loader import RegistryConfig
from .errors import ConfigError, NotFoundError, TransportError, UpstreamError
from .logger import get_logger
from .validators import Identifier

logger = get_logger("RegistryClient")

# Raw bodies can be large; the log only needs enough to spot shape drift.
MAX_LOGGED_BODY = 4096


class RegistryClient:
    """Authenticated fetcher for registry records.

    Attributes:
        config: Immutable registry settings (base URL, token, timeout).
    """

    def __init__(self, config: RegistryConfig):
        self.config = config

    def endpoint_path(self, identifier: Identifier) -> str:
        """Return the path, relative to ``base_url``, for ``identifier``."""
        variant = self.config.endpoint_variant
        if variant == "exist":
            return f"entreprise/{identifier.siren}/exist"
        if variant == "etablissement" and identifier.kind == "siret":
            return f"etablissement/{identifier.value}"
        return f"entreprise/{identifier.siren}"

    def url_for(self, identifier: Identifier) -> str:
        return f"{self.config.base_url.rstrip('/')}/{self.endpoint_path(identifier)}"

    def _get_headers(self) -> dict[str, str]:
        authorization = self.config.authorization
        if authorization is None:
            raise ConfigError("Registry token is not configured")
        return {
            self.config.auth_header: authorization,
            "Accept": "application/json",
        }

    async def fetch(self, identifier: Identifier) -> bytes:
        """Fetch the raw registry record for ``identifier``.

        Returns:
            The response body of a 200 answer.

        Raises:
            ConfigError: If no token is configured.
            NotFoundError: If the registry answers 404.
            UpstreamError: For any other non-200 status.
            TransportError: On connection failure or timeout.
        """
        headers = self._get_headers()
        url = self.url_for(identifier)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    status = response.status
                    body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Registry request for %s failed: %r", identifier, exc)
            raise TransportError(exc) from exc

        logger.debug(
            "Raw registry response for %s (HTTP %s): %s",
            identifier,
            status,
            body[:MAX_LOGGED_BODY].decode("utf-8", errors="replace"),
        )

        if status == 404:
            raise NotFoundError(f"Registry has no record for {identifier}")
        if status != 200:
            text = body.decode("utf-8", errors="replace")
            logger.error("Registry answered HTTP %s for %s: %s", status, identifier, text[:MAX_LOGGED_BODY])
            raise UpstreamError(status, text)
        return body


__all__ = ["RegistryClient"]
