"""Tests for registration payload validation."""

import pytest

from authgate.core.errors import ValidationAppError
from authgate.core.validation import validate_registration_payload


@pytest.fixture
def payload() -> dict:
    return {
        "userName": "alice",
        "password": "longpassword",
        "email": "a@b.com",
        "age": 30,
    }


class TestValidateRegistrationPayload:

    def test_accepts_valid_payload(self, payload: dict) -> None:
        result = validate_registration_payload(payload)

        assert result.userName == "alice"
        assert result.password == "longpassword"
        assert str(result.email) == "a@b.com"
        assert result.age == 30

    def test_accepts_fractional_age(self, payload: dict) -> None:
        payload["age"] = 30.5
        assert validate_registration_payload(payload).age == 30.5

    def test_ignores_unknown_fields(self, payload: dict) -> None:
        payload["role"] = "admin"
        result = validate_registration_payload(payload)
        assert not hasattr(result, "role")

    def test_password_of_exactly_eight_chars_accepted(self, payload: dict) -> None:
        payload["password"] = "12345678"
        assert validate_registration_payload(payload).password == "12345678"

    @pytest.mark.parametrize("field", ["email", "userName", "password", "age"])
    def test_rejects_missing_field(self, payload: dict, field: str) -> None:
        del payload[field]

        with pytest.raises(ValidationAppError) as exc_info:
            validate_registration_payload(payload)

        assert exc_info.value.code == "invalid_input"
        assert exc_info.value.message == "Invalid Input"
        assert field in exc_info.value.details["fields"]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("password", "short"),
            ("password", 12345678),
            ("email", "not-an-email"),
            ("email", "a@"),
            ("userName", ""),
            ("userName", 42),
            ("age", "30"),
            ("age", True),
            ("age", None),
            ("age", float("nan")),
            ("age", float("inf")),
            ("age", float("-inf")),
        ],
    )
    def test_rejects_malformed_field(self, payload: dict, field: str, value: object) -> None:
        payload[field] = value

        with pytest.raises(ValidationAppError) as exc_info:
            validate_registration_payload(payload)

        assert exc_info.value.details["fields"] == [field]

    @pytest.mark.parametrize("body", [None, [], "alice", 42])
    def test_rejects_non_object_body(self, body: object) -> None:
        with pytest.raises(ValidationAppError):
            validate_registration_payload(body)
