"""Tests for bearer token issue and verification."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from coinledger.auth.jwt import issue_token, reset_keys, verify_token
from coinledger.config import get_settings
from coinledger.errors import ExpiredToken, InvalidToken


class TestIssueAndVerify:
    def test_round_trip_claims(self):
        token = issue_token(user_id=7, username="alice")
        claims = verify_token(token)
        assert claims.user_id == 7
        assert claims.username == "alice"
        assert len(claims.jti) == 32
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_payload_uses_camel_case_user_id(self):
        token = issue_token(user_id=7, username="alice")
        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["userId"] == 7
        assert payload["iss"] == "coinledger"

    def test_default_lifetime_is_24_hours(self):
        token = issue_token(user_id=1, username="bob")
        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["exp"] - payload["iat"] == 24 * 3600

    def test_each_token_gets_a_fresh_jti(self):
        first = verify_token(issue_token(user_id=1, username="bob"))
        second = verify_token(issue_token(user_id=1, username="bob"))
        assert first.jti != second.jti


class TestRejection:
    def test_expired_token(self):
        token = issue_token(user_id=1, username="bob", expires_delta=timedelta(seconds=-10))
        with pytest.raises(ExpiredToken):
            verify_token(token)

    def test_tampered_token(self):
        token = issue_token(user_id=1, username="bob")
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"
        with pytest.raises(InvalidToken) as exc_info:
            verify_token(tampered)
        assert not isinstance(exc_info.value, ExpiredToken)

    def test_wrong_secret(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"userId": 1, "username": "bob", "jti": "x", "iat": now, "exp": now + timedelta(hours=1), "iss": "coinledger"},
            "some-other-secret-that-is-also-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            verify_token(token)

    def test_wrong_issuer(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"userId": 1, "username": "bob", "jti": "x", "iat": now, "exp": now + timedelta(hours=1), "iss": "elsewhere"},
            settings.jwt_secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            verify_token(token)

    def test_missing_user_claims(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"jti": "x", "iat": now, "exp": now + timedelta(hours=1), "iss": "coinledger"},
            settings.jwt_secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken, match="missing user claims"):
            verify_token(token)

    def test_missing_jti(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"userId": 1, "username": "bob", "iat": now, "exp": now + timedelta(hours=1), "iss": "coinledger"},
            settings.jwt_secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            verify_token(token)

    def test_garbage(self):
        with pytest.raises(InvalidToken):
            verify_token("not-a-token")


class TestRsaKeys:
    @pytest.fixture
    def rsa_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        private_path = tmp_path / "jwt_private.pem"
        public_path = tmp_path / "jwt_public.pem"
        private_path.write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        public_path.write_bytes(
            key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )
        monkeypatch.setenv("COINLEDGER_JWT_ALGORITHM", "RS256")
        monkeypatch.setenv("COINLEDGER_JWT_PRIVATE_KEY_PATH", str(private_path))
        monkeypatch.setenv("COINLEDGER_JWT_PUBLIC_KEY_PATH", str(public_path))
        get_settings.cache_clear()
        reset_keys()

    def test_rs256_round_trip(self, rsa_settings):
        token = issue_token(user_id=3, username="carol")
        assert jwt.get_unverified_header(token)["alg"] == "RS256"
        claims = verify_token(token)
        assert claims.user_id == 3
        assert claims.username == "carol"
