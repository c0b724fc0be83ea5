import time
from urllib.parse import parse_qsl, urlencode

import pytest

from app.core.exceptions import AuthenticationError
from app.core.security import build_data_check_string, verify_init_data

from conftest import BOT_TOKEN, sign_init_data

USER = {"id": 111, "first_name": "Aung", "username": "aung"}


def tamper(init_data: str, **changes) -> str:
    params = dict(parse_qsl(init_data, keep_blank_values=True))
    params.update(changes)
    return urlencode(params)


def test_valid_init_data():
    result = verify_init_data(sign_init_data(USER), BOT_TOKEN)

    assert result.telegram_id == "111"
    assert result.user["username"] == "aung"
    assert result.query_id == "AAHdF6IQAAAAAN0XohDhrOrc"


def test_data_check_string_is_sorted_and_excludes_hash():
    params = {"user": "{}", "auth_date": "1700000000", "hash": "abc", "query_id": "q"}
    assert build_data_check_string(params) == "auth_date=1700000000\nquery_id=q\nuser={}"


def test_extra_fields_are_covered_by_signature():
    init_data = sign_init_data(USER, start_param="promo", chat_type="private")
    assert verify_init_data(init_data, BOT_TOKEN).params["start_param"] == "promo"

    with pytest.raises(AuthenticationError, match="Invalid hash"):
        verify_init_data(tamper(init_data, start_param="other"), BOT_TOKEN)


def test_modified_user_fails():
    init_data = tamper(sign_init_data(USER), user='{"id":222,"first_name":"Mallory"}')
    with pytest.raises(AuthenticationError, match="Invalid hash"):
        verify_init_data(init_data, BOT_TOKEN)


def test_modified_hash_fails():
    init_data = tamper(sign_init_data(USER), hash="0" * 64)
    with pytest.raises(AuthenticationError, match="Invalid hash"):
        verify_init_data(init_data, BOT_TOKEN)


def test_non_ascii_hash_fails():
    init_data = tamper(sign_init_data(USER), hash="\u00e9" * 64)
    with pytest.raises(AuthenticationError, match="Invalid hash"):
        verify_init_data(init_data, BOT_TOKEN)


def test_other_bot_token_fails():
    with pytest.raises(AuthenticationError, match="Invalid hash"):
        verify_init_data(sign_init_data(USER, bot_token="654321:OTHER"), BOT_TOKEN)


def test_expired_auth_date():
    signed_at = 1_700_000_000
    init_data = sign_init_data(USER, auth_date=signed_at)

    assert verify_init_data(init_data, BOT_TOKEN, now=signed_at + 86400).telegram_id == "111"
    with pytest.raises(AuthenticationError, match="expired"):
        verify_init_data(init_data, BOT_TOKEN, now=signed_at + 86401)


def test_custom_max_age():
    init_data = sign_init_data(USER, auth_date=int(time.time()) - 120)
    with pytest.raises(AuthenticationError, match="expired"):
        verify_init_data(init_data, BOT_TOKEN, max_age_seconds=60)


@pytest.mark.parametrize("init_data, message", [
    (None, "Missing initData"),
    ("", "Missing initData"),
    ("user=%7B%7D&auth_date=1700000000", "Missing hash"),
])
def test_missing_pieces(init_data, message):
    with pytest.raises(AuthenticationError, match=message):
        verify_init_data(init_data, BOT_TOKEN)


def test_missing_bot_token():
    with pytest.raises(AuthenticationError, match="Bot token not configured"):
        verify_init_data(sign_init_data(USER), None)


# ------------------------------------------------------------------
# /auth/verify
# ------------------------------------------------------------------

def test_verify_endpoint_accepts_signed_data(client):
    response = client.post("/api/v1/auth/verify", json={"initData": sign_init_data(USER, auth_date=int(time.time()))})

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["user"]["id"] == 111
    assert isinstance(data["authDate"], int)


def test_verify_endpoint_rejects_tampered_data(client):
    init_data = tamper(sign_init_data(USER), user='{"id":222}')
    response = client.post("/api/v1/auth/verify", json={"initData": init_data})

    assert response.status_code == 401
    assert response.json() == {"valid": False, "error": "Invalid hash"}


def test_verify_endpoint_rejects_non_ascii_hash(client):
    init_data = tamper(sign_init_data(USER, auth_date=int(time.time())), hash="\u00e9")
    response = client.post("/api/v1/auth/verify", json={"initData": init_data})

    assert response.status_code == 401
    assert response.json() == {"valid": False, "error": "Invalid hash"}


def test_verify_endpoint_requires_init_data(client):
    response = client.post("/api/v1/auth/verify", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing initData"
