# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP delivery over implicit TLS or STARTTLS.

A single :class:`SMTPSession` runs the envelope command sequence; how the
secure channel is established is delegated to a transport strategy:

- :class:`ImplicitTLS`: TLS handshake right after the TCP connect (port 465)
- :class:`StartTLS`: plaintext connect upgraded with ``STARTTLS`` (port 587)
- :class:`Plaintext`: no encryption, only when configured explicitly

With ``security = auto`` port 465 selects implicit TLS and every other port
STARTTLS.

Command sequence: connect, EHLO, AUTH (only when credentials are configured
and the server advertises it), MAIL FROM, one RCPT TO per recipient, DATA,
QUIT. The connection is closed on every exit path. Any failed step raises
:class:`DeliveryError`; a single rejected recipient fails the whole send.

Example:
    Sending a composed message::

        transport = MailTransport(config.relay)
        await transport.send(raw_message, "noreply@example.com", ["dest@example.com"])
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from typing import Any

import aiosmtplib

from .config_loader import RelayConfig
from .errors import DeliveryError
from .logger import get_logger

logger = get_logger("MailTransport")


class TransportStrategy:
    """How the SMTP client reaches a secure session."""

    name = "base"
    use_tls = False
    start_tls = False

    def create_client(self, relay: RelayConfig) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=relay.host,
            port=relay.port,
            use_tls=self.use_tls,
            start_tls=self.start_tls,
            timeout=relay.timeout_seconds,
        )


class ImplicitTLS(TransportStrategy):
    name = "implicit-tls"
    use_tls = True


class StartTLS(TransportStrategy):
    name = "starttls"
    start_tls = True


class Plaintext(TransportStrategy):
    name = "plaintext"


def select_strategy(relay: RelayConfig) -> TransportStrategy:
    if relay.security == "tls":
        return ImplicitTLS()
    if relay.security == "starttls":
        return StartTLS()
    if relay.security == "none":
        return Plaintext()
    return ImplicitTLS() if relay.port == 465 else StartTLS()


class SMTPSession:
    """One SMTP conversation with the relay, used as an async context manager.

    Entering the context connects, greets and authenticates; leaving it sends
    QUIT after a successful exchange and always closes the connection.

    Attributes:
        step: Name of the protocol step currently running.
    """

    def __init__(self, relay: RelayConfig, strategy: TransportStrategy):
        self.relay = relay
        self.strategy = strategy
        self.step = "connect"
        self._smtp: aiosmtplib.SMTP | None = None

    async def _run(self, step: str, operation: Awaitable[Any]) -> Any:
        self.step = step
        try:
            return await operation
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise DeliveryError(step, exc) from exc

    async def __aenter__(self) -> SMTPSession:
        self._smtp = self.strategy.create_client(self.relay)
        try:
            await self._run("connect", self._smtp.connect())
            await self._run("connect", self._smtp.ehlo())
            if self.relay.user and self.relay.password:
                if self._smtp.supports_extension("auth"):
                    await self._run("authenticate", self._smtp.login(self.relay.user, self.relay.password))
                else:
                    logger.warning("Relay %s does not advertise AUTH, sending unauthenticated", self.relay.host)
        except BaseException:
            await self.close(graceful=False)
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close(graceful=exc_type is None)

    async def send_envelope(self, sender: str, recipients: Sequence[str], message: bytes) -> None:
        if self._smtp is None:
            raise RuntimeError("SMTP session is not open")
        await self._run("mail", self._smtp.mail(sender))
        for recipient in recipients:
            await self._run("rcpt", self._smtp.rcpt(recipient))
        await self._run("data", self._smtp.data(message))

    async def close(self, graceful: bool = True) -> None:
        smtp, self._smtp = self._smtp, None
        if smtp is None:
            return
        try:
            if graceful and smtp.is_connected:
                await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.debug("QUIT to %s failed: %s", self.relay.host, exc)
        finally:
            smtp.close()


class MailTransport:
    """Delivers composed messages to the configured relay.

    Attributes:
        relay: Relay host, port, credentials and timeout.
        strategy: Transport strategy; derived from ``relay`` when omitted.
    """

    def __init__(self, relay: RelayConfig, strategy: TransportStrategy | None = None):
        self.relay = relay
        self.strategy = strategy or select_strategy(relay)

    async def send(self, message: bytes, sender: str, recipients: Sequence[str]) -> None:
        """Deliver ``message`` to every address in ``recipients``.

        Raises:
            DeliveryError: If any SMTP step fails or the session times out.
        """
        session = SMTPSession(self.relay, self.strategy)

        async def _deliver() -> None:
            async with session:
                await session.send_envelope(sender, recipients, message)

        try:
            await asyncio.wait_for(_deliver(), timeout=self.relay.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise DeliveryError(session.step, TimeoutError("relay session timed out")) from exc
        logger.info(
            "Delivered message to %d recipient(s) via %s:%s (%s)",
            len(recipients),
            self.relay.host,
            self.relay.port,
            self.strategy.name,
        )


__all__ = [
    "ImplicitTLS",
    "MailTransport",
    "Plaintext",
    "SMTPSession",
    "StartTLS",
    "TransportStrategy",
    "select_strategy",
]
