"""Pytest configuration and fixtures."""

import json
import os
import time
from collections.abc import Callable, Generator
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient
from jwt.algorithms import ECAlgorithm
from postgrest.exceptions import APIError as PostgrestAPIError

# Throwaway ES256 key pair standing in for the provider's signing key
TEST_PRIVATE_KEY = ec.generate_private_key(ec.SECP256R1())
_test_jwk = json.loads(ECAlgorithm.to_jwk(TEST_PRIVATE_KEY.public_key()))
_test_jwk["alg"] = "ES256"
TEST_SIGNING_KEY_JWK = json.dumps(_test_jwk)

TEST_USER_ID = "550e8400-e29b-41d4-a716-446655440000"

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_REDIRECT_URL", "http://localhost:3000/login")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ["SUPABASE_SIGNING_KEY_JWK"] = TEST_SIGNING_KEY_JWK

PROFILE_COLUMNS = ("age", "dob", "contact", "address", "city", "state", "country")


def make_token(
    sub: str | None = TEST_USER_ID,
    email: str | None = "test@example.com",
    role: str | None = "authenticated",
    exp_offset: int = 3600,
    private_key: Any = TEST_PRIVATE_KEY,
    **extra_claims: Any,
) -> str:
    """Sign an access token the way the session provider would."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": sub,
        "email": email,
        "role": role,
        "exp": now + exp_offset,
        "iat": now,
        "aud": "authenticated",
        "iss": "https://test-project.supabase.co/auth/v1",
        **extra_claims,
    }
    if sub is None:
        del payload["sub"]
    return jwt.encode(payload, private_key, algorithm="ES256")


class FakeQuery:
    """Minimal stand-in for a PostgREST query builder."""

    def __init__(self, store: "FakeSupabase", table: str) -> None:
        self.store = store
        self.table_name = table
        self._op = "select"
        self._payload: dict[str, Any] = {}
        self._filters: list[tuple[str, Any]] = []
        self._limit: int | None = None

    def select(self, *_columns: str) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, row: dict[str, Any]) -> "FakeQuery":
        self._op = "insert"
        self._payload = row
        return self

    def update(self, changes: dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = changes
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def execute(self) -> SimpleNamespace:
        rows = self.store.rows.setdefault(self.table_name, [])
        matched = [r for r in rows if all(r.get(c) == v for c, v in self._filters)]

        if self._op == "insert":
            if any(r["user_id"] == self._payload["user_id"] for r in rows):
                raise PostgrestAPIError(
                    {
                        "code": "23505",
                        "message": "duplicate key value violates unique constraint",
                        "details": "",
                        "hint": "",
                    }
                )
            row = {"id": str(uuid4()), **{c: None for c in PROFILE_COLUMNS}, **self._payload}
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return SimpleNamespace(data=[dict(r) for r in matched])

        data = [dict(r) for r in matched]
        if self._limit is not None:
            data = data[: self._limit]
        return SimpleNamespace(data=data)


class FakeSupabase:
    """In-memory Supabase client covering the table calls the app makes."""

    def __init__(self) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache."""
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Callable producing signed test access tokens."""
    return make_token


@pytest.fixture
def test_user_id() -> str:
    """Subject of the tokens produced by token_factory."""
    return TEST_USER_ID


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header for TEST_USER_ID."""
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def fake_supabase() -> Generator[FakeSupabase, None, None]:
    """Route every database call to an in-memory fake."""
    fake = FakeSupabase()
    with (
        patch("src.core.supabase.get_supabase_client", return_value=fake),
        patch("src.services.profile_service.get_supabase_client", return_value=fake),
    ):
        yield fake


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with (
        patch("src.core.supabase.get_supabase_client", return_value=mock_client),
        patch("src.services.profile_service.get_supabase_client", return_value=mock_client),
    ):
        yield mock_client


@pytest.fixture
def client(fake_supabase: FakeSupabase) -> Generator[TestClient, None, None]:
    """Provide a test client backed by the in-memory database."""
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client
