"""Tests for operator JWT handling and cron secret verification."""

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from config.settings import settings
from src.tp_common.errors import (
    InvalidCronSecretError,
    InvalidOperatorTokenError,
    OperatorRoleRequiredError,
)
from src.tp_gateway.auth.dependencies import require_operator, verify_cron_secret
from src.tp_gateway.auth.jwt_handler import create_operator_token, decode_operator_token


class TestOperatorToken:
    def test_round_trip(self) -> None:
        payload = decode_operator_token(create_operator_token("ops@example.com"))
        assert payload["sub"] == "ops@example.com"
        assert payload["role"] == "admin"

    def test_wrong_role(self) -> None:
        token = create_operator_token("dj-1", role="broadcaster")
        with pytest.raises(OperatorRoleRequiredError):
            decode_operator_token(token)

    def test_expired(self) -> None:
        token = create_operator_token("ops", expires_minutes=-1)
        with pytest.raises(InvalidOperatorTokenError):
            decode_operator_token(token)

    def test_garbage(self) -> None:
        with pytest.raises(InvalidOperatorTokenError):
            decode_operator_token("not-a-jwt")


class TestRequireOperator:
    async def test_missing_credentials(self) -> None:
        with pytest.raises(InvalidOperatorTokenError):
            await require_operator(None)

    async def test_valid_credentials(self) -> None:
        creds = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=create_operator_token("ops")
        )
        operator = await require_operator(creds)
        assert operator.subject == "ops"


class TestCronSecret:
    async def test_accepts_bearer_secret(self) -> None:
        await verify_cron_secret(f"Bearer {settings.CRON_SECRET}")

    @pytest.mark.parametrize("header", [None, "", "Bearer wrong", settings.CRON_SECRET])
    async def test_rejects_others(self, header: str | None) -> None:
        with pytest.raises(InvalidCronSecretError):
            await verify_cron_secret(header)
