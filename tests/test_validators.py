import pytest

from entreprise_proxy.errors import InvalidIdentifierError, MethodNotAllowedError, MissingFieldError, ValidationError
from entreprise_proxy.models import SendEmailPayload
from entreprise_proxy.validators import ensure_post, validate_email_request, validate_identifier


@pytest.mark.parametrize("value", ["552100554", "55210055400013"])
def test_accepts_siren_and_siret(value):
    identifier = validate_identifier(value)
    assert identifier.value == value


def test_strips_spaces():
    assert validate_identifier(" 552 100 554 ").value == "552100554"


@pytest.mark.parametrize(
    "value",
    ["", "12345678", "1234567890", "123456789012345", "55210055A", "5521005540001X", "-55210055", "５５２１００５５４"],
)
def test_rejects_malformed_identifiers(value):
    with pytest.raises(InvalidIdentifierError) as excinfo:
        validate_identifier(value)
    assert excinfo.value.reason == "must be 9 or 14 digits"


def test_restricted_deployment_accepts_only_siret():
    with pytest.raises(InvalidIdentifierError) as excinfo:
        validate_identifier("552100554", allowed_lengths=(14,))
    assert excinfo.value.reason == "must be 14 digits"
    assert validate_identifier("55210055400013", allowed_lengths=(14,)).kind == "siret"


def test_identifier_kinds():
    siret = validate_identifier("55210055400013")
    assert siret.kind == "siret"
    assert siret.siren == "552100554"
    assert siret.siret == "55210055400013"

    siren = validate_identifier("552100554")
    assert siren.kind == "siren"
    assert siren.siret is None


def test_ensure_post():
    ensure_post("post")
    with pytest.raises(MethodNotAllowedError):
        ensure_post("GET")


def test_email_request_reports_first_missing_field():
    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request({"to": "", "subject": "", "body": "y"})
    assert excinfo.value.name == "to"

    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request({"to": "a@example.com", "subject": "   ", "body": "y"})
    assert excinfo.value.name == "subject"

    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request(SendEmailPayload(to="a@example.com", subject="x"))
    assert excinfo.value.name == "body"


def test_email_request_rejects_separator_only_recipient():
    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request({"to": " , ", "subject": "x", "body": "y"})
    assert excinfo.value.name == "to"


def test_email_request_rejects_non_string_field():
    with pytest.raises(ValidationError, match="must be a string"):
        validate_email_request({"to": ["a@example.com"], "subject": "x", "body": "y"})


def test_attachment_fields_must_come_together():
    base = {"to": "a@example.com", "subject": "x", "body": "y"}
    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request({**base, "attachment_name": "devis.pdf"})
    assert excinfo.value.name == "attachment_data"

    with pytest.raises(MissingFieldError) as excinfo:
        validate_email_request({**base, "attachment_data": "QUJD"})
    assert excinfo.value.name == "attachment_name"


def test_valid_email_request():
    message = validate_email_request(
        {
            "to": "a@example.com, b@example.com",
            "subject": "Devis",
            "body": "Bonjour",
            "attachment_name": "devis.pdf",
            "attachment_data": "JVBERi0xLjQK",
        }
    )
    assert message.recipients == ["a@example.com", "b@example.com"]
    assert message.attachment.filename == "devis.pdf"
    assert message.attachment.content_type is None
