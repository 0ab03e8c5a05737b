# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Normalization of registry payloads into :class:`CanonicalEntity`.

The registry has answered with several shapes over time:

- flat: fields at the root, optional root ``adresse`` object
- nested: as flat, plus an ``etablissement.adresse`` object
- wrapped: the record sits under a ``common`` object
- enveloped: the record sits under a ``data`` object

Shape detection walks :data:`PAYLOAD_VARIANTS` in order; the first variant
whose predicate matches locates the record. Field extraction and the
name/address resolution rules are shared by every variant, so supporting a
new shape only means adding a :class:`PayloadVariant`.

Example:
    Normalizing a registry answer::

        entity = normalize(b'{"denomination": "ACME"}')
        entity.legal_name  # "ACME"
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import DecodeError
from .logger import get_logger
from .models import UNKNOWN_NAME, CanonicalEntity, PostalAddress, RegistrationNumbers
from .validators import Identifier

logger = get_logger("Normalizer")

VAT_KEYS = ("numero_tva", "numtva", "tva_intracommunautaire")


def _text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class RegistryRecord:
    """Fields extracted from one payload, before any resolution."""

    denomination: str = ""
    denomination_usuelle: str = ""
    nom_commercial: str = ""
    enseigne: str = ""
    siren: str = ""
    siret: str = ""
    vat_number: str = ""
    root_address: PostalAddress = field(default_factory=PostalAddress)
    nested_address: PostalAddress = field(default_factory=PostalAddress)


@dataclass(frozen=True)
class PayloadVariant:
    """A known payload shape.

    Attributes:
        name: Discriminator logged with each normalization.
        matches: Predicate on the decoded document.
        locate: Returns the object holding the record fields.
    """

    name: str
    matches: Callable[[dict[str, Any]], bool]
    locate: Callable[[dict[str, Any]], dict[str, Any]]


PAYLOAD_VARIANTS: tuple[PayloadVariant, ...] = (
    PayloadVariant(
        name="wrapped",
        matches=lambda doc: isinstance(doc.get("common"), dict),
        locate=lambda doc: doc["common"],
    ),
    PayloadVariant(
        name="enveloped",
        matches=lambda doc: isinstance(doc.get("data"), dict),
        locate=lambda doc: doc["data"],
    ),
    PayloadVariant(
        name="nested",
        matches=lambda doc: isinstance(doc.get("etablissement"), dict),
        locate=lambda doc: doc,
    ),
    PayloadVariant(
        name="flat",
        matches=lambda doc: True,
        locate=lambda doc: doc,
    ),
)


def detect_variant(document: dict[str, Any], variants: tuple[PayloadVariant, ...] = PAYLOAD_VARIANTS) -> PayloadVariant:
    for variant in variants:
        if variant.matches(document):
            return variant
    raise DecodeError("payload matches no known shape")


def _address(value: Any) -> PostalAddress:
    data = _obj(value)
    return PostalAddress(city=_text(data.get("ville")), postal_code=_text(data.get("code_postal")))


def extract_record(fields: dict[str, Any]) -> RegistryRecord:
    """Read every field the resolution rules need; absent ones become ``""``."""
    establishment = _obj(fields.get("etablissement"))
    vat = next((_text(fields.get(key)) for key in VAT_KEYS if _text(fields.get(key))), "")
    return RegistryRecord(
        denomination=_text(fields.get("denomination")),
        denomination_usuelle=_text(fields.get("denomination_usuelle")),
        nom_commercial=_text(fields.get("nom_commercial")),
        enseigne=_text(fields.get("enseigne")),
        siren=_text(fields.get("siren")),
        siret=_text(fields.get("siret")) or _text(establishment.get("siret")),
        vat_number=vat,
        root_address=_address(fields.get("adresse")),
        nested_address=_address(establishment.get("adresse")),
    )


def resolve_legal_name(record: RegistryRecord) -> str:
    """Denomination, then usual denomination, then trade name, then sentinel."""
    for candidate in (
        record.denomination,
        record.denomination_usuelle,
        record.nom_commercial,
        record.enseigne,
    ):
        if candidate:
            return candidate
    return UNKNOWN_NAME


def resolve_address(record: RegistryRecord) -> PostalAddress:
    """Root address if it names a city, else the establishment address. Never merged."""
    root = record.root_address
    if root.city:
        return root
    return record.nested_address


def decode_payload(raw: bytes | str) -> dict[str, Any]:
    try:
        document = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(exc) from exc
    if not isinstance(document, dict):
        raise DecodeError(f"expected a JSON object, got {type(document).__name__}")
    return document


def normalize(raw: bytes | str, identifier: Identifier | None = None) -> CanonicalEntity:
    """Build the canonical entity from a 200 registry body.

    Args:
        raw: Response body.
        identifier: The identifier that was looked up. Used to fill SIREN and
            SIRET when the payload omits them.

    Raises:
        DecodeError: If the body is not a JSON object.
    """
    document = decode_payload(raw)
    variant = detect_variant(document)
    record = extract_record(variant.locate(document))
    logger.debug("Registry payload for %s matched variant %s", identifier, variant.name)

    siren = record.siren or (identifier.siren if identifier else "")
    siret = record.siret or (identifier.siret if identifier else None) or ""
    return CanonicalEntity(
        legal_name=resolve_legal_name(record),
        registration_numbers=RegistrationNumbers(
            siren=siren or None,
            siret=siret or None,
            vat_number=record.vat_number or None,
        ),
        postal_address=resolve_address(record),
    )


__all__ = [
    "PAYLOAD_VARIANTS",
    "PayloadVariant",
    "RegistryRecord",
    "decode_payload",
    "detect_variant",
    "extract_record",
    "normalize",
    "resolve_address",
    "resolve_legal_name",
]
