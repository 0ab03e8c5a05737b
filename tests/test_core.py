import json
from typing import Any, List

import pytest

from entreprise_proxy.config_loader import ProxyConfig, RegistryConfig, RelayConfig
from entreprise_proxy.core import EntrepriseProxy
from entreprise_proxy.errors import ConfigError, InvalidIdentifierError, MissingFieldError, NotFoundError

RELAY = RelayConfig(host="smtp.local", port=465, user="noreply@example.com", password="secret")


class DummyRegistry:
    def __init__(self, payload: Any = None, error: Exception | None = None):
        self.payload = payload if payload is not None else {"denomination": "ACME"}
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, identifier):
        self.calls.append(identifier.value)
        if self.error:
            raise self.error
        return json.dumps(self.payload).encode()


class DummyTransport:
    def __init__(self):
        self.sent: List[dict] = []

    async def send(self, message, sender, recipients):
        self.sent.append({"message": message, "sender": sender, "recipients": list(recipients)})


def _proxy(registry=None, transport=None, relay=RELAY, lengths=(9, 14)):
    config = ProxyConfig(registry=RegistryConfig(token="t", identifier_lengths=lengths), relay=relay)
    return EntrepriseProxy(config, registry=registry or DummyRegistry(), transport=transport or DummyTransport())


@pytest.mark.asyncio
async def test_lookup_normalizes_registry_payload():
    registry = DummyRegistry({"denomination": "ACME", "adresse": {"ville": "PARIS", "code_postal": "75001"}})
    entity = await _proxy(registry=registry).lookup("12345678901234")

    assert registry.calls == ["12345678901234"]
    assert entity.legal_name == "ACME"
    assert entity.postal_address.city == "PARIS"
    assert entity.registration_numbers.siret == "12345678901234"


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["", "1234", "1234567890", "12345678A01234", "123456789012345"])
async def test_invalid_identifier_never_reaches_registry(value):
    registry = DummyRegistry()
    with pytest.raises(InvalidIdentifierError):
        await _proxy(registry=registry).lookup(value)
    assert registry.calls == []


@pytest.mark.asyncio
async def test_siret_only_deployment_rejects_siren():
    registry = DummyRegistry()
    with pytest.raises(InvalidIdentifierError):
        await _proxy(registry=registry, lengths=(14,)).lookup("552100554")
    assert registry.calls == []


@pytest.mark.asyncio
async def test_lookup_propagates_not_found():
    with pytest.raises(NotFoundError):
        await _proxy(registry=DummyRegistry(error=NotFoundError("gone"))).lookup("552100554")


@pytest.mark.asyncio
async def test_send_email_composes_and_delivers():
    transport = DummyTransport()
    await _proxy(transport=transport).send_email(
        {
            "to": "a@example.com, b@example.com",
            "subject": "Devis",
            "body": "Bonjour",
            "attachment_name": "devis.pdf",
            "attachment_data": "JVBERi0xLjQK",
        }
    )

    assert len(transport.sent) == 1
    sent = transport.sent[0]
    assert sent["sender"] == "noreply@example.com"
    assert sent["recipients"] == ["a@example.com", "b@example.com"]
    assert b"Subject: Devis\r\n" in sent["message"]
    assert b'filename="devis.pdf"' in sent["message"]


@pytest.mark.asyncio
async def test_send_email_uses_configured_sender():
    transport = DummyTransport()
    relay = RelayConfig(host="smtp.local", user="login", password="secret", sender="contact@example.com")
    await _proxy(transport=transport, relay=relay).send_email({"to": "a@example.com", "subject": "x", "body": "y"})

    assert transport.sent[0]["sender"] == "contact@example.com"
    assert b"From: contact@example.com\r\n" in transport.sent[0]["message"]


@pytest.mark.asyncio
async def test_send_email_validates_before_delivery():
    transport = DummyTransport()
    with pytest.raises(MissingFieldError):
        await _proxy(transport=transport).send_email({"to": "", "subject": "x", "body": "y"})
    assert transport.sent == []


@pytest.mark.asyncio
async def test_send_email_without_relay_configuration():
    transport = DummyTransport()
    with pytest.raises(ConfigError):
        await _proxy(transport=transport, relay=RelayConfig()).send_email(
            {"to": "a@example.com", "subject": "x", "body": "y"}
        )
    assert transport.sent == []
