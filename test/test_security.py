# test/test_security.py
import pytest

from auth.security import (
    TokenIssuer, generate_session_key, get_password_hash, get_session_cipher,
    hash_session_key, validate_password, verify_password
)
from core.exceptions import TokenExpired, TokenInvalid, ValidationError


CLAIMS = {"sub": "t1", "user_id": 7, "username": "t1", "role": "coordinator",
          "examiner_id": None, "school_id": None}


def test_issue_and_verify_roundtrip():
    issuer = TokenIssuer("k1", ttl_seconds=60)
    claims = issuer.verify(issuer.issue(CLAIMS))
    assert claims["user_id"] == 7
    assert claims["role"] == "coordinator"
    assert claims["type"] == "access"
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected():
    issuer = TokenIssuer("k1")
    token = issuer.issue(CLAIMS, ttl_seconds=-10)
    with pytest.raises(TokenExpired):
        issuer.verify(token)


def test_token_signed_with_other_secret_is_rejected():
    token = TokenIssuer("k1").issue(CLAIMS)
    with pytest.raises(TokenInvalid):
        TokenIssuer("k2").verify(token)


def test_tampered_and_garbage_tokens_are_rejected():
    issuer = TokenIssuer("k1")
    token = issuer.issue(CLAIMS)
    head, payload, signature = token.split(".")
    tampered = ".".join([head, payload, signature[::-1]])
    for bad in (tampered, "not-a-token", ""):
        with pytest.raises(TokenInvalid):
            issuer.verify(bad)


def test_token_without_user_id_is_rejected():
    issuer = TokenIssuer("k1")
    token = issuer.issue({"sub": "ghost", "role": "admin"})
    with pytest.raises(TokenInvalid):
        issuer.verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenIssuer("")


def test_password_hash_never_stores_plaintext():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert hashed.startswith("$2b$")
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)
    assert not verify_password("secret123", "")


def test_short_password_is_rejected():
    ok, message = validate_password("abc")
    assert not ok
    assert "at least" in message
    with pytest.raises(ValidationError) as exc:
        get_password_hash("abc")
    assert exc.value.fields == ["password"]


def test_password_over_bcrypt_limit_is_rejected():
    ok, _ = validate_password("x" * 73)
    assert not ok


def test_session_key_is_stored_encrypted_and_hashed():
    key, encrypted, digest = generate_session_key("s3")
    assert encrypted != key
    assert digest == hash_session_key(key)
    assert get_session_cipher("s3").decrypt(encrypted.encode()).decode() == key
