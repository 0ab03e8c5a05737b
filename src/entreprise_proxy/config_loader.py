# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration dataclasses and INI/environment loader.

Configuration is read once at process start and frozen afterwards. Every
option is looked up in an INI file first, then in an ``EPX_*`` environment
variable, then falls back to a default.

Example:
    Configuration file format (config.ini)::

        [server]
        host = 0.0.0.0
        port = 8091

        [registry]
        base_url = https://api.societe.com/api/v1
        token = my-secret-token
        timeout_seconds = 10
        endpoint_variant = etablissement
        identifier_lengths = 9,14

        [relay]
        host = smtp.example.com
        port = 465
        user = noreply@example.com
        password = secret
        security = auto

        [cors]
        allowed_origins = https://example.com, http://localhost:8082

    Loading it::

        config = load_settings("/etc/entreprise-proxy/config.ini")
        config.registry.timeout_seconds
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .logger import get_logger

logger = get_logger("ConfigLoader")

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:8082",
    "https://vintagestandards.fr",
    "https://dev.vintagestandards.fr",
)

ENDPOINT_VARIANTS = ("etablissement", "entreprise", "exist")
SECURITY_MODES = ("auto", "tls", "starttls", "none")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = 8091
    log_level: str = "INFO"


@dataclass(frozen=True)
class RegistryConfig:
    """Registry (Societe.com) lookup settings."""

    base_url: str = "https://api.societe.com/api/v1"
    """Base URL the endpoint path is appended to."""

    token: str | None = None
    """Secret token sent in the authorization header."""

    auth_header: str = "X-Authorization"
    auth_scheme: str = "socapi"
    """Scheme name prefixed to the token in the authorization header."""

    timeout_seconds: float = 10.0
    """Total timeout for one registry request."""

    endpoint_variant: str = "etablissement"
    """One of ``etablissement``, ``entreprise`` or ``exist``."""

    identifier_lengths: tuple[int, ...] = (9, 14)
    """Accepted identifier lengths. Some deployments only accept SIRET (14)."""

    @property
    def authorization(self) -> str | None:
        if not self.token:
            return None
        return f"{self.auth_scheme} {self.token}"


@dataclass(frozen=True)
class RelayConfig:
    """SMTP relay settings."""

    host: str | None = None
    port: int = 465
    user: str | None = None
    password: str | None = None
    sender: str | None = None
    """Envelope and ``From`` address. Defaults to ``user``."""

    security: str = "auto"
    """``auto`` picks implicit TLS on 465 and STARTTLS elsewhere."""

    timeout_seconds: float = 10.0

    @property
    def from_address(self) -> str | None:
        return self.sender or self.user

    @property
    def missing(self) -> list[str]:
        """Names of required settings that are not configured."""
        required = {
            "host": self.host,
            "user": self.user,
            "password": self.password,
            "sender": self.from_address,
        }
        return [name for name, value in required.items() if not value]


@dataclass(frozen=True)
class CorsConfig:
    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    allowed_methods: str = "GET, POST, OPTIONS"
    allowed_headers: str = "Content-Type, Authorization"


@dataclass(frozen=True)
class ProxyConfig:
    """Main configuration container.

    Example:
        config = ProxyConfig(
            registry=RegistryConfig(token="secret"),
            relay=RelayConfig(host="smtp.example.com", port=587),
        )
        config.relay.port
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_settings(
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProxyConfig:
    """Load configuration from an INI file with environment variables as fallbacks.

    Environment variables (all prefixed with EPX_):
      EPX_CONFIG - Path to config.ini file (default: config.ini)
      EPX_LOG_LEVEL - Logging level (default: INFO)
      EPX_HOST, EPX_PORT - Listener (PORT is honoured as well)
      EPX_REGISTRY_URL, EPX_REGISTRY_TOKEN, EPX_REGISTRY_AUTH_SCHEME,
      EPX_REGISTRY_TIMEOUT, EPX_REGISTRY_ENDPOINT, EPX_IDENTIFIER_LENGTHS
      EPX_SMTP_HOST, EPX_SMTP_PORT, EPX_SMTP_USER, EPX_SMTP_PASSWORD,
      EPX_SMTP_FROM, EPX_SMTP_SECURITY, EPX_SMTP_TIMEOUT
      EPX_ALLOWED_ORIGINS - Comma separated origin allow-list

    A missing config file is not an error; environment and defaults apply.

    Raises:
        ValueError: If a numeric option cannot be parsed or an enumerated
            option has an unknown value.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get("EPX_CONFIG", "config.ini"))
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
    else:
        logger.info("Config file %s not found, using environment only", path)

    def get(section: str, option: str, env_name: str, default: str | None = None) -> str | None:
        value = parser.get(section, option, fallback="").strip()
        if not value:
            value = env.get(env_name)
        if value is None or value == "":
            return default
        return value

    def get_int(section: str, option: str, env_name: str, default: int) -> int:
        value = get(section, option, env_name)
        return default if value is None else int(value)

    def get_float(section: str, option: str, env_name: str, default: float) -> float:
        value = get(section, option, env_name)
        return default if value is None else float(value)

    endpoint_variant = get("registry", "endpoint_variant", "EPX_REGISTRY_ENDPOINT", "etablissement")
    if endpoint_variant not in ENDPOINT_VARIANTS:
        raise ValueError(f"Unknown registry endpoint variant: {endpoint_variant}")

    lengths_raw = get("registry", "identifier_lengths", "EPX_IDENTIFIER_LENGTHS", "9,14")
    identifier_lengths = tuple(int(item) for item in _split_list(lengths_raw))
    if not identifier_lengths or any(length not in (9, 14) for length in identifier_lengths):
        raise ValueError(f"Identifier lengths must be 9 and/or 14, got {lengths_raw!r}")

    security = get("relay", "security", "EPX_SMTP_SECURITY", "auto").lower()
    if security not in SECURITY_MODES:
        raise ValueError(f"Unknown relay security mode: {security}")

    origins_raw = get("cors", "allowed_origins", "EPX_ALLOWED_ORIGINS")
    origins = _split_list(origins_raw) if origins_raw else DEFAULT_ALLOWED_ORIGINS

    server = ServerConfig(
        host=get("server", "host", "EPX_HOST", "0.0.0.0"),
        port=get_int("server", "port", "EPX_PORT", int(env.get("PORT") or 8091)),
        log_level=get("logging", "level", "EPX_LOG_LEVEL", "INFO").upper(),
    )
    registry = RegistryConfig(
        base_url=get("registry", "base_url", "EPX_REGISTRY_URL", RegistryConfig.base_url).rstrip("/"),
        token=get("registry", "token", "EPX_REGISTRY_TOKEN"),
        auth_scheme=get("registry", "auth_scheme", "EPX_REGISTRY_AUTH_SCHEME", "socapi"),
        timeout_seconds=get_float("registry", "timeout_seconds", "EPX_REGISTRY_TIMEOUT", 10.0),
        endpoint_variant=endpoint_variant,
        identifier_lengths=identifier_lengths,
    )
    relay = RelayConfig(
        host=get("relay", "host", "EPX_SMTP_HOST"),
        port=get_int("relay", "port", "EPX_SMTP_PORT", 465),
        user=get("relay", "user", "EPX_SMTP_USER"),
        password=get("relay", "password", "EPX_SMTP_PASSWORD"),
        sender=get("relay", "sender", "EPX_SMTP_FROM"),
        security=security,
        timeout_seconds=get_float("relay", "timeout_seconds", "EPX_SMTP_TIMEOUT", 10.0),
    )
    config = ProxyConfig(server=server, registry=registry, relay=relay, cors=CorsConfig(allowed_origins=origins))

    if not registry.token:
        logger.warning("No registry token configured; lookups will fail")
    if relay.missing:
        logger.warning("Relay settings missing: %s; email sending disabled", ", ".join(relay.missing))
    return config


__all__ = [
    "CorsConfig",
    "ProxyConfig",
    "RegistryConfig",
    "RelayConfig",
    "ServerConfig",
    "load_settings",
]
