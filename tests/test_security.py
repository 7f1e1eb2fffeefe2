from app.core.db import to_async_url
from app.core.security import (
    create_access_token,
    create_api_token,
    create_oauth_state,
    create_refresh_token,
    decode_access_token,
    decode_api_token,
    decode_oauth_state,
    decode_refresh_token,
    generate_api_key,
    hash_password,
    verify_password,
)


def test_api_token_carries_tenant_and_key() -> None:
    token = create_api_token(7, "k" * 32)

    assert decode_api_token(token) == ("7", "k" * 32)
    assert decode_access_token(token) is None


def test_token_types_are_not_interchangeable() -> None:
    access = create_access_token(7)
    refresh = create_refresh_token(7)

    assert decode_access_token(access) == "7"
    assert decode_api_token(access) == (None, None)
    sub, jti = decode_refresh_token(refresh)
    assert sub == "7" and jti
    assert decode_oauth_state(access) is None


def test_oauth_state_round_trip() -> None:
    assert decode_oauth_state(create_oauth_state(3)) == "3"
    assert decode_oauth_state("garbage") is None


def test_password_hashing() -> None:
    hashed = hash_password("correct horse")

    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)


def test_api_keys_are_random_hex() -> None:
    key = generate_api_key()

    assert len(key) == 32
    assert key != generate_api_key()
    int(key, 16)


def test_database_url_is_rewritten_for_asyncpg() -> None:
    url = to_async_url("postgres://u:p@db.example.com/app?sslmode=require&channel_binding=require")

    assert url == "postgresql+asyncpg://u:p@db.example.com/app"
