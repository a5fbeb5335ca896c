"""
凭据加密与 OAuth state 签名测试
"""
import time

import pytest

from mediacloud.core import crypto
from mediacloud.core.exceptions import CloudStorageError

from app.core import security


def test_encrypt_produces_hex_triplet():
    sealed = crypto.encrypt("app-password", "secret")

    iv_hex, tag_hex, body_hex = sealed.split(":")
    assert len(iv_hex) == 24
    assert len(tag_hex) == 32
    assert len(body_hex) == len("app-password") * 2
    assert crypto.is_encrypted(sealed)
    assert crypto.decrypt(sealed, "secret") == "app-password"


def test_encrypt_uses_fresh_iv():
    assert crypto.encrypt("same", "secret") != crypto.encrypt("same", "secret")


def test_plaintext_passes_through_decrypt():
    assert crypto.decrypt("ya29.plain-token", "secret") == "ya29.plain-token"
    assert crypto.decrypt(None, "secret") is None


def test_wrong_key_returns_stored_value():
    sealed = crypto.encrypt("app-password", "secret")

    assert crypto.decrypt(sealed, "another-secret") == sealed


def test_encrypt_requires_a_secret():
    with pytest.raises(CloudStorageError):
        crypto.encrypt("app-password", None)


def test_state_round_trip():
    state = security.create_state("user-1", "secret")

    assert security.verify_state(state, "secret") == "user-1"


def test_state_with_colons_in_user_id():
    state = security.create_state("auth0|abc:def", "secret")

    assert security.verify_state(state, "secret") == "auth0|abc:def"


def test_tampered_state_is_rejected():
    state = security.create_state("user-1", "secret")
    payload, signature = state.rsplit(".", 1)
    forged = security.create_state("admin", "secret").rsplit(".", 1)[0]

    assert security.verify_state(f"{forged}.{signature}", "secret") is None
    assert security.verify_state(state, "other-secret") is None
    assert security.verify_state("user-1", "secret") is None
    assert security.verify_state(None, "secret") is None


def test_expired_state_is_rejected(monkeypatch):
    state = security.create_state("user-1", "secret")
    now = time.time()
    monkeypatch.setattr(security.time, "time", lambda: now + security.STATE_TTL + 5)

    assert security.verify_state(state, "secret") is None


def test_state_without_secret_uses_process_key():
    state = security.create_state("user-1")

    assert security.verify_state(state) == "user-1"
    assert security.verify_state(state, "secret") is None
