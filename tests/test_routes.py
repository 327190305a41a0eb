"""Tests for the registration and session check endpoints.

The default client fixture does not run the app lifespan, so the window
scheduler never fires and window boundaries are driven by ``limiter.reset()``.
"""

from unittest.mock import AsyncMock

import jwt
import pytest
from fastapi.testclient import TestClient

from authgate.adapters.accounts.in_memory import InMemoryAccountStore
from authgate.adapters.accounts.sql import SqlAccountStore
from authgate.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from authgate.core.app_factory import create_app
from authgate.core.errors import ConfigurationAppError, StorageUnavailableAppError

TOKEN_PREFIX = "This is your JWT token "


def _token_from(response) -> str:
    assert response.text.startswith(TOKEN_PREFIX)
    return response.text[len(TOKEN_PREFIX):]


class TestSignUp:

    def test_register_then_duplicate(
        self, client: TestClient, store: InMemoryAccountStore, alice_payload: dict
    ) -> None:
        first = client.post("/sign-up", json=alice_payload)

        assert first.status_code == 200
        assert first.headers["content-type"].startswith("text/plain")
        assert _token_from(first)

        second = client.post("/sign-up", json=alice_payload)

        assert second.status_code == 200
        assert second.text == "User already exists. Please login!"
        assert store.count("alice") == 1

    def test_get_with_body_is_accepted(self, client: TestClient, alice_payload: dict) -> None:
        response = client.request("GET", "/sign-up", json=alice_payload)

        assert response.status_code == 200
        assert _token_from(response)

    def test_missing_age_is_422_without_record_or_throttle_slot(
        self,
        client: TestClient,
        store: InMemoryAccountStore,
        limiter: InMemoryFixedWindowRateLimiter,
        alice_payload: dict,
    ) -> None:
        del alice_payload["age"]

        response = client.post("/sign-up", json=alice_payload)

        assert response.status_code == 422
        assert response.text == "Invalid Input"
        assert response.headers["X-Error-Code"] == "invalid_input"
        assert store.records == []
        assert limiter.count_for("alice") == 0

    @pytest.mark.parametrize(
        "field,value",
        [("password", "short"), ("email", "not-an-email"), ("age", "thirty")],
    )
    def test_malformed_fields_are_422(
        self, client: TestClient, alice_payload: dict, field: str, value: str
    ) -> None:
        alice_payload[field] = value

        assert client.post("/sign-up", json=alice_payload).status_code == 422

    def test_validation_rejects_even_when_throttled(
        self,
        client: TestClient,
        limiter: InMemoryFixedWindowRateLimiter,
        alice_payload: dict,
    ) -> None:
        for _ in range(5):
            limiter.consume("alice")
        del alice_payload["email"]

        assert client.post("/sign-up", json=alice_payload).status_code == 422

    def test_non_json_body_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/sign-up",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.text == "Bad request"

    def test_empty_body_is_422(self, client: TestClient) -> None:
        assert client.post("/sign-up").status_code == 422

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_age_is_422(
        self, client: TestClient, store: InMemoryAccountStore, literal: str
    ) -> None:
        body = (
            '{"userName": "carol", "password": "longpassword", '
            f'"email": "c@d.com", "age": {literal}}}'
        )

        response = client.post(
            "/sign-up", content=body, headers={"content-type": "application/json"}
        )

        assert response.status_code == 422
        assert response.text == "Invalid Input"
        assert store.records == []

    def test_non_finite_age_is_422_on_sql_store(self, make_settings) -> None:
        sql_store = SqlAccountStore("sqlite://")
        sql_store.create_schema()
        client = TestClient(create_app(make_settings(), store=sql_store))
        body = '{"userName": "carol", "password": "longpassword", "email": "c@d.com", "age": NaN}'

        response = client.post(
            "/sign-up", content=body, headers={"content-type": "application/json"}
        )
        registered = client.post(
            "/sign-up",
            json={"userName": "carol", "password": "longpassword", "email": "c@d.com", "age": 41},
        )

        assert response.status_code == 422
        assert _token_from(registered)

    def test_sixth_call_within_window_is_429(
        self, client: TestClient, alice_payload: dict
    ) -> None:
        statuses = [client.post("/sign-up", json=alice_payload).status_code for _ in range(6)]

        assert statuses == [200, 200, 200, 200, 200, 429]

    def test_429_response_shape(self, client: TestClient, alice_payload: dict) -> None:
        for _ in range(5):
            client.post("/sign-up", json=alice_payload)

        response = client.post("/sign-up", json=alice_payload)

        assert response.status_code == 429
        assert response.text == "Too many requests. Please try again later!"
        assert response.headers["Retry-After"] == "1"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_window_reset_readmits(
        self,
        client: TestClient,
        limiter: InMemoryFixedWindowRateLimiter,
        alice_payload: dict,
    ) -> None:
        for _ in range(6):
            client.post("/sign-up", json=alice_payload)

        limiter.reset()

        response = client.post("/sign-up", json=alice_payload)
        assert response.status_code == 200
        assert response.text == "User already exists. Please login!"

    def test_throttle_is_per_username(self, client: TestClient, alice_payload: dict) -> None:
        for _ in range(6):
            client.post("/sign-up", json=alice_payload)

        bob = dict(alice_payload, userName="bob")
        assert client.post("/sign-up", json=bob).status_code == 200

    def test_rate_limit_disabled(
        self, store: InMemoryAccountStore, alice_payload: dict, make_settings
    ) -> None:
        app = create_app(make_settings(rate_limit_enabled=False), store=store)
        client = TestClient(app)

        statuses = {client.post("/sign-up", json=alice_payload).status_code for _ in range(8)}

        assert statuses == {200}

    def test_storage_unavailable_is_503(self, alice_payload: dict, make_settings) -> None:
        store = InMemoryAccountStore(
            fail_with=StorageUnavailableAppError(code="storage_unavailable", message="down")
        )
        client = TestClient(create_app(make_settings(), store=store))

        response = client.post("/sign-up", json=alice_payload)

        assert response.status_code == 503
        assert response.headers["X-Error-Code"] == "storage_unavailable"
        assert "down" not in response.text

    def test_unexpected_store_fault_is_generic_400(self, alice_payload: dict, make_settings) -> None:
        store = AsyncMock()
        store.exists.side_effect = RuntimeError("connection string leaked here")
        app = create_app(make_settings(), store=store)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/sign-up", json=alice_payload)

        assert response.status_code == 400
        assert response.text == "Bad request"
        assert "leaked" not in response.text


class TestLogin:

    def test_issued_token_logs_in(self, client: TestClient, alice_payload: dict) -> None:
        token = _token_from(client.post("/sign-up", json=alice_payload))

        response = client.post("/login", headers={"authorization": token})

        assert response.status_code == 200
        assert response.text == "You're logged-in"

    def test_bearer_scheme_accepted(self, client: TestClient, alice_payload: dict) -> None:
        token = _token_from(client.post("/sign-up", json=alice_payload))

        response = client.post("/login", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    @pytest.mark.parametrize("headers", [{}, {"authorization": "garbage"}, {"authorization": "a.b.c"}])
    def test_bad_token_is_401(self, client: TestClient, headers: dict) -> None:
        response = client.post("/login", headers=headers)

        assert response.status_code == 401
        assert response.text == "Unauthorized"
        assert response.headers["X-Error-Code"] == "unauthorized"

    def test_login_throttled_by_token_subject(
        self,
        client: TestClient,
        limiter: InMemoryFixedWindowRateLimiter,
        alice_payload: dict,
    ) -> None:
        token = _token_from(client.post("/sign-up", json=alice_payload))

        statuses = [
            client.post("/login", headers={"authorization": token}).status_code
            for _ in range(5)
        ]

        assert statuses == [200, 200, 200, 200, 429]
        assert limiter.count_for("alice") == 5

    def test_login_without_token_throttled_by_client(
        self, client: TestClient, limiter: InMemoryFixedWindowRateLimiter
    ) -> None:
        statuses = [client.post("/login").status_code for _ in range(6)]

        assert statuses == [401, 401, 401, 401, 401, 429]
        assert limiter.count_for("ip:testclient") == 5

    def test_login_gates_skip_body_validation_and_throttle_before_verifying(
        self,
        client: TestClient,
        limiter: InMemoryFixedWindowRateLimiter,
        alice_payload: dict,
    ) -> None:
        token = _token_from(client.post("/sign-up", json=alice_payload))
        limiter.reset()

        # A body that would fail registration validation is never inspected
        with_body = client.post("/login", headers={"authorization": token}, json={"userName": "bob"})
        assert with_body.status_code == 200
        assert limiter.count_for("bob") == 0
        assert limiter.count_for("alice") == 1

        for _ in range(4):
            assert client.post("/login", headers={"authorization": token}).status_code == 200

        # Charged to the claimed subject before the signature is checked
        forged = jwt.encode({"userName": "alice"}, "another-secret-0123456789abcdef01", algorithm="HS256")
        response = client.post("/login", headers={"authorization": forged})

        assert response.status_code == 429


class TestPasswordSignedTokens:

    @pytest.fixture
    def client(self, store: InMemoryAccountStore, make_settings) -> TestClient:
        app = create_app(make_settings(token_secret_source="password", jwt_secret=None), store=store)
        return TestClient(app)

    def test_login_requires_registration_password(
        self, client: TestClient, alice_payload: dict
    ) -> None:
        token = _token_from(client.post("/sign-up", json=alice_payload))

        ok = client.post("/login", headers={"authorization": token, "password": "longpassword"})
        wrong = client.post("/login", headers={"authorization": token, "password": "otherpassword"})
        missing = client.post("/login", headers={"authorization": token})

        assert ok.status_code == 200
        assert wrong.status_code == 401
        assert missing.status_code == 401


class TestAppLifecycle:

    def test_lifespan_runs_window_scheduler(self, app) -> None:
        with TestClient(app) as client:
            body = client.get("/health").json()
            assert body == {"status": "ok", "storage": "custom", "rate_limit_scheduler": True}

        assert app.state.reset_scheduler.running is False

    def test_health_without_lifespan(self, client: TestClient) -> None:
        body = client.get("/health").json()

        assert body["status"] == "ok"
        assert body["rate_limit_scheduler"] is False

    def test_service_secret_required(self, make_settings) -> None:
        with pytest.raises(ConfigurationAppError) as exc_info:
            create_app(make_settings(jwt_secret=None), store=InMemoryAccountStore())

        assert exc_info.value.code == "auth_missing_secret"

    def test_default_store_comes_from_settings(self, make_settings) -> None:
        app = create_app(make_settings())

        assert isinstance(app.state.account_store, InMemoryAccountStore)
        assert app.state.storage_backend == "memory"
