import asyncio

import httpx
import pytest

from app.core.exceptions import (
    DocumentValidationError,
    ResourceNotFoundError,
    StorageError,
    WriteConflictError,
)
from app.db.collections import Collection
from app.db.jsonbin import JsonBinClient
from app.db.repository import Repository, SingletonDocument
from app.models.catalog import Category
from app.models.content import ShopSettings

from conftest import STORE_BASE


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_client(backend, clock=None, **kwargs):
    return JsonBinClient(
        base_url=STORE_BASE,
        api_key="test-master-key",
        transport=httpx.MockTransport(backend.handler),
        clock=clock or FakeClock(),
        **kwargs,
    )


def categories_repo(client, max_retries=3):
    return Repository(client, Collection.CATEGORIES, "bin-categories", Category, "Category", max_retries=max_retries)


def test_read_serves_cache_within_ttl(backend):
    clock = FakeClock()
    client = make_client(backend, clock=clock)

    asyncio.run(client.read("bin-users"))
    asyncio.run(client.read("bin-users"))
    assert backend.gets() == 1

    clock.now += 31
    asyncio.run(client.read("bin-users"))
    assert backend.gets() == 2


def test_read_bypasses_cache_when_asked(backend):
    client = make_client(backend)
    asyncio.run(client.read("bin-users"))
    asyncio.run(client.read("bin-users", use_cache=False))
    assert backend.gets() == 2


def test_read_returns_private_copy(backend):
    client = make_client(backend)
    first = asyncio.run(client.read("bin-users"))
    first["users"].append({"id": "tampered"})
    assert asyncio.run(client.read("bin-users")) == {"users": []}


def test_read_falls_back_to_stale_cache(backend):
    clock = FakeClock()
    client = make_client(backend, clock=clock)
    asyncio.run(client.read("bin-users"))

    backend.fail_reads = True
    clock.now += 120
    assert asyncio.run(client.read("bin-users")) == {"users": []}


def test_read_without_cache_propagates_failure(backend):
    backend.fail_reads = True
    client = make_client(backend)

    with pytest.raises(StorageError) as exc_info:
        asyncio.run(client.read("bin-users"))

    assert exc_info.value.status == 500
    assert "boom" in exc_info.value.body


def test_write_sends_master_key_and_versioning_header(backend):
    client = make_client(backend)
    asyncio.run(client.write("bin-users", {"users": [{"id": "u1"}]}))

    put = [request for request in backend.requests if request.method == "PUT"][0]
    assert put.headers["X-Master-Key"] == "test-master-key"
    assert put.headers["X-Bin-Versioning"] == "true"
    assert backend.document("bin-users") == {"users": [{"id": "u1"}]}


def test_write_refreshes_cache(backend):
    client = make_client(backend)
    asyncio.run(client.read("bin-users"))
    asyncio.run(client.write("bin-users", {"users": [{"id": "u1"}]}))

    assert asyncio.run(client.read("bin-users")) == {"users": [{"id": "u1"}]}
    assert backend.gets() == 1


def test_write_detects_version_conflict(backend):
    client = make_client(backend)
    snapshot = asyncio.run(client.fetch("bin-users"))
    backend.versions["bin-users"] += 1

    with pytest.raises(WriteConflictError):
        asyncio.run(client.write("bin-users", {"users": []}, expected_version=snapshot.version))
    assert backend.puts() == 0


def test_version_check_skipped_when_versioning_disabled(backend):
    client = make_client(backend, versioning=False)
    snapshot = asyncio.run(client.fetch("bin-users"))
    backend.versions["bin-users"] += 1

    asyncio.run(client.write("bin-users", {"users": []}, expected_version=snapshot.version))
    assert backend.puts() == 1


def test_unknown_bin_raises_storage_error(backend):
    client = make_client(backend)
    with pytest.raises(StorageError) as exc_info:
        asyncio.run(client.fetch("missing"))
    assert exc_info.value.status == 404


def test_network_error_becomes_storage_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = JsonBinClient(STORE_BASE, "key", transport=httpx.MockTransport(refuse))
    with pytest.raises(StorageError):
        asyncio.run(client.fetch("bin-users"))


def test_create_bin_returns_new_id(backend):
    client = make_client(backend)
    new_id = asyncio.run(client.create_bin("shop-users", {"users": []}))

    assert new_id == "bin-created-1"
    post = [request for request in backend.requests if request.method == "POST"][0]
    assert post.headers["X-Bin-Name"] == "shop-users"
    assert post.headers["X-Bin-Private"] == "true"


def test_refresh_counts_successes(backend):
    client = make_client(backend)
    refreshed = asyncio.run(client.refresh(["bin-users", "bin-orders", "missing"]))
    assert refreshed == 2


def test_repository_create_update_delete(backend):
    repo = categories_repo(make_client(backend))

    created = asyncio.run(repo.create(Category(name="Mobile Legends", flag="🇲🇲")))
    stored = backend.records("bin-categories", "categories")[0]
    assert stored["id"] == created.id
    assert stored["hasDiscount"] is False

    updated = asyncio.run(repo.update(created.id, {"name": "MLBB"}))
    assert updated.name == "MLBB"
    assert updated.updated_at >= created.updated_at

    assert asyncio.run(repo.delete(created.id)) is True
    assert backend.records("bin-categories", "categories") == []
    assert asyncio.run(repo.delete(created.id)) is False


def test_repository_update_missing_record(backend):
    repo = categories_repo(make_client(backend))
    with pytest.raises(ResourceNotFoundError) as exc_info:
        asyncio.run(repo.update("id_missing", {"name": "x"}))
    assert exc_info.value.details == {"id": "id_missing"}


def test_repository_preserves_unknown_keys(backend):
    backend.seed("bin-categories", {
        "categories": [{"id": "c1", "name": "PUBG", "legacyField": 7}],
        "schemaVersion": 2,
    })
    repo = categories_repo(make_client(backend))

    asyncio.run(repo.update("c1", {"icon": "pubg.png"}))

    document = backend.document("bin-categories")
    assert document["schemaVersion"] == 2
    assert document["categories"][0]["legacyField"] == 7
    assert document["categories"][0]["icon"] == "pubg.png"


def test_repository_retries_after_conflict(backend):
    repo = categories_repo(make_client(backend))
    backend.interfere = 1

    asyncio.run(repo.create(Category(name="Free Fire")))

    assert backend.puts() == 1
    assert len(backend.records("bin-categories", "categories")) == 1


def test_repository_gives_up_after_max_retries(backend):
    repo = categories_repo(make_client(backend), max_retries=2)
    backend.interfere = 10

    with pytest.raises(WriteConflictError):
        asyncio.run(repo.create(Category(name="Free Fire")))
    assert backend.puts() == 0


def test_malformed_document_reads_as_empty_but_blocks_writes(backend):
    backend.seed("bin-categories", {"categories": {"not": "a list"}})
    repo = categories_repo(make_client(backend))

    assert asyncio.run(repo.list()) == []
    with pytest.raises(DocumentValidationError):
        asyncio.run(repo.create(Category(name="Genshin")))
    assert backend.document("bin-categories") == {"categories": {"not": "a list"}}


def test_malformed_record_is_skipped_on_read_but_blocks_writes(backend):
    backend.seed("bin-categories", {"categories": [{"id": "c1"}, {"id": "c2", "name": "PUBG"}]})
    repo = categories_repo(make_client(backend))

    assert [category.id for category in asyncio.run(repo.list())] == ["c2"]
    assert asyncio.run(repo.get("c2")).name == "PUBG"
    assert asyncio.run(repo.get("c1")) is None

    with pytest.raises(DocumentValidationError) as exc_info:
        asyncio.run(repo.create(Category(name="Genshin")))
    assert exc_info.value.details["index"] == 0
    assert len(backend.records("bin-categories", "categories")) == 2


def test_repository_list_degrades_to_empty(backend):
    backend.fail_reads = True
    repo = categories_repo(make_client(backend))
    assert asyncio.run(repo.list()) == []


def test_repository_write_failure_propagates(backend):
    backend.fail_writes = True
    repo = categories_repo(make_client(backend))
    with pytest.raises(StorageError):
        asyncio.run(repo.create(Category(name="Genshin")))


def test_concurrent_mutations_are_not_lost(backend):
    repo = categories_repo(make_client(backend))

    async def create_many():
        await asyncio.gather(*(repo.create(Category(name=f"Game {i}")) for i in range(5)))

    asyncio.run(create_many())
    assert len(backend.records("bin-categories", "categories")) == 5


def test_singleton_document_update(backend):
    document = SingletonDocument(make_client(backend), "bin-main", ShopSettings, "Settings")

    updated = asyncio.run(document.update({"announcement": "Double diamonds this weekend"}))

    assert updated.announcement == "Double diamonds this weekend"
    assert backend.document("bin-main")["announcement"] == "Double diamonds this weekend"
    assert backend.document("bin-main")["websiteName"] == "Game Top-Up Shop"
