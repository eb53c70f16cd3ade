"""
Unit Tests for Security Module.

Black box tests against the public interface of security.py.
JWT signing and verification execute for real.
Only the config boundary is stubbed with real Pydantic schema objects.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from jose import jwt

from notevault.backend.core.config_schema import CapabilityTokenSchema
from notevault.backend.core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    TokenIssueError,
)
from notevault.backend.core.security import (
    Claim,
    decode_capability_token,
    issue_capability_token,
)

TEST_TOKEN_SECRET = "test-token-secret-that-is-long-enough-for-hs512"

CREATED = datetime(2026, 3, 4, 5, 6, 7, 123456)


@pytest.fixture
def capability_config():
    """Real Pydantic CapabilityTokenSchema with test values."""
    return CapabilityTokenSchema(algorithm="HS512")


@pytest.fixture
def _stub_config(capability_config):
    """Stub the config boundary so security functions can resolve settings."""
    settings = SimpleNamespace(token_secret=TEST_TOKEN_SECRET)
    app_config = SimpleNamespace(security=SimpleNamespace(capability=capability_config))
    with (
        patch("notevault.backend.core.security.get_settings", return_value=settings),
        patch("notevault.backend.core.security.get_app_config", return_value=app_config),
    ):
        yield


@pytest.mark.usefixtures("_stub_config")
class TestIssueAndDecode:
    """Tests for capability token issue/verify."""

    def test_claims_survive_signing(self):
        claims = [Claim("abc234", CREATED), Claim("other", CREATED + timedelta(seconds=1))]
        decoded = decode_capability_token(issue_capability_token(claims, "10.0.0.1"))

        assert decoded.claims == claims
        assert decoded.subject == "10.0.0.1"
        assert decoded.issued_at is not None

    def test_microseconds_preserved(self):
        token = issue_capability_token([Claim("abc234", CREATED)])
        decoded = decode_capability_token(token)

        assert decoded.contains("abc234", CREATED)
        assert not decoded.contains("abc234", CREATED.replace(microsecond=0))

    def test_empty_claims(self):
        decoded = decode_capability_token(issue_capability_token([]))
        assert decoded.claims == []

    def test_payload_shape(self):
        token = issue_capability_token([Claim("abc234", CREATED)], "host")
        payload = jwt.get_unverified_claims(token)

        assert payload["ids"] == [["abc234", "2026-03-04T05:06:07.123456"]]
        assert payload["sub"] == "host"
        assert "exp" not in payload

    def test_wrong_secret_rejected(self):
        forged = jwt.encode(
            {"ids": [["abc234", "2026-03-04T05:06:07.123456"]], "sub": "x"},
            "some-other-secret",
            algorithm="HS512",
        )
        with pytest.raises(InvalidTokenError):
            decode_capability_token(forged)

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTokenError):
            decode_capability_token("not-a-token")

    def test_tampered_token_rejected(self):
        token = issue_capability_token([Claim("abc234", CREATED)])
        tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")
        with pytest.raises(InvalidTokenError):
            decode_capability_token(tampered)

    @pytest.mark.parametrize(
        "ids",
        [
            "abc234",
            [["abc234"]],
            [["abc234", 5]],
            [["abc234", "yesterday"]],
        ],
    )
    def test_malformed_claims_rejected(self, ids):
        token = jwt.encode({"ids": ids, "sub": "x"}, TEST_TOKEN_SECRET, algorithm="HS512")
        with pytest.raises(InvalidTokenError):
            decode_capability_token(token)

    def test_signing_failure_raises_issue_error(self):
        with patch(
            "notevault.backend.core.security.jwt.encode",
            side_effect=TypeError("boom"),
        ):
            with pytest.raises(TokenIssueError):
                issue_capability_token([Claim("abc234", CREATED)])


class TestTokenLifetime:
    """Expiry only applies when token_lifetime_minutes is configured."""

    @pytest.fixture
    def capability_config(self):
        return CapabilityTokenSchema(algorithm="HS512", token_lifetime_minutes=5)

    @pytest.mark.usefixtures("_stub_config")
    def test_exp_claim_added(self):
        token = issue_capability_token([])
        assert "exp" in jwt.get_unverified_claims(token)

    @pytest.mark.usefixtures("_stub_config")
    def test_expired_token_rejected(self):
        past = datetime(2020, 1, 1)
        with patch("notevault.backend.core.security.utc_now", return_value=past):
            token = issue_capability_token([Claim("abc234", CREATED)])

        with pytest.raises(TokenExpiredError):
            decode_capability_token(token)
