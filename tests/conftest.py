"""
Shared fixtures: an in-memory JSONBin and Telegram Bot API behind httpx.MockTransport.
"""

import copy
import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.collections import Collection, default_document
from app.main import create_app
from app.services.container import build_services

STORE_BASE = "https://jsonbin.test/v3/b"
TELEGRAM_BASE = "https://telegram.test"
BOT_TOKEN = "123456:TEST-TOKEN"
ADMIN_PASSWORD = "admin-secret"
ADMIN_ID = "999"


class FakeBackend:
    """
    Minimal JSONBin v3 + Telegram Bot API.

    - bins: bin id -> document; versions bump on every PUT
    - interfere: number of upcoming GETs after which another writer bumps the version
    - fail_reads / fail_writes: answer with HTTP 500
    - failing_chats: chat ids the bot cannot reach
    """

    def __init__(self):
        self.bins: Dict[str, Any] = {}
        self.versions: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []
        self.sent: List[Dict[str, Any]] = []
        self.interfere = 0
        self.fail_reads = False
        self.fail_writes = False
        self.failing_chats = set()
        self._created = 0

    def seed(self, bin_id: str, document: Any):
        self.bins[bin_id] = copy.deepcopy(document)
        self.versions[bin_id] = 1

    def document(self, bin_id: str) -> Any:
        return self.bins[bin_id]

    def records(self, bin_id: str, key: str) -> List[Dict[str, Any]]:
        return self.bins[bin_id][key]

    def gets(self) -> int:
        return sum(1 for request in self.requests if request.method == "GET")

    def puts(self) -> int:
        return sum(1 for request in self.requests if request.method == "PUT")

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "telegram.test":
            return self._telegram(request)
        self.requests.append(request)
        return self._jsonbin(request)

    def _jsonbin(self, request: httpx.Request) -> httpx.Response:
        parts = [part for part in request.url.path.split("/") if part]
        # /v3/b, /v3/b/{id}, /v3/b/{id}/latest
        bin_id = parts[2] if len(parts) > 2 else None

        if request.method == "POST" and bin_id is None:
            self._created += 1
            new_id = f"bin-created-{self._created}"
            self.seed(new_id, json.loads(request.content))
            return httpx.Response(200, json={"record": self.bins[new_id], "metadata": {"id": new_id}})

        if bin_id not in self.bins:
            return httpx.Response(404, json={"message": "Bin not found"})

        if request.method == "GET":
            if self.fail_reads:
                return httpx.Response(500, json={"message": "boom"})
            response = httpx.Response(200, json={
                "record": self.bins[bin_id],
                "metadata": {"id": bin_id, "version": self.versions[bin_id], "private": True},
            })
            if self.interfere:
                self.interfere -= 1
                self.versions[bin_id] += 1
            return response

        if request.method == "PUT":
            if self.fail_writes:
                return httpx.Response(500, json={"message": "write failed"})
            self.bins[bin_id] = json.loads(request.content)
            self.versions[bin_id] += 1
            return httpx.Response(200, json={
                "record": self.bins[bin_id],
                "metadata": {"parentId": bin_id, "version": self.versions[bin_id], "private": True},
            })

        return httpx.Response(405)

    def _telegram(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content)
        chat_id = str(payload.get("chat_id"))
        if chat_id in self.failing_chats:
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})
        self.sent.append({"method": method, **payload})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.sent)}})

    def messages_to(self, chat_id: str) -> List[Dict[str, Any]]:
        return [message for message in self.sent if str(message.get("chat_id")) == str(chat_id)]


def bin_name(collection: Collection) -> str:
    return f"bin-{collection.value.lower()}"


def make_config(**overrides) -> Settings:
    values = dict(
        ENVIRONMENT="development",
        JSONBIN_API_KEY="test-master-key",
        JSONBIN_BASE_URL=STORE_BASE,
        TELEGRAM_API_BASE=TELEGRAM_BASE,
        BOT_TOKEN=BOT_TOKEN,
        ADMIN_TELEGRAM_ID=ADMIN_ID,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        CACHE_REFRESH_INTERVAL_SECONDS=0,
        BROADCAST_DELAY_SECONDS=0,
        OTP_REQUIRED=False,
    )
    values.update({f"BIN_{collection.value}": bin_name(collection) for collection in Collection})
    values.update(overrides)
    return Settings(**values)


def sign_init_data(user: Dict[str, Any], auth_date: Optional[int] = None, bot_token: str = BOT_TOKEN, **extra) -> str:
    """Builds init data signed the way Telegram signs it."""
    params = {
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user, separators=(",", ":")),
        "auth_date": str(auth_date if auth_date is not None else int(time.time())),
        **extra,
    }
    data_check_string = "\n".join(f"{key}={params[key]}" for key in sorted(params))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    params["hash"] = hmac.new(secret, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(params)


@pytest.fixture
def backend():
    fake = FakeBackend()
    for collection in Collection:
        fake.seed(bin_name(collection), default_document(collection))
    return fake


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def services(config, backend):
    return build_services(config, transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def client(config, backend):
    app = create_app(config, transport=httpx.MockTransport(backend.handler))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}


def user_headers(telegram_id: int = 111, **profile) -> Dict[str, str]:
    user = {"id": telegram_id, "first_name": "Aung", "username": "aung", **profile}
    return {"X-Telegram-Init-Data": sign_init_data(user)}
