"""
app/db/jsonbin.py

Purpose: JSONBin.io document store client

- Reads a whole collection document (GET {base}/{id}/latest)
- Replaces a whole collection document (PUT {base}/{id})
- Short-TTL in-memory read cache with stale fallback on fetch failure
- Optimistic version check before writes when the store reports versions
- Per-collection asyncio locks for read-modify-write cycles
"""

import asyncio
import copy
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from app.core.exceptions import StorageError, WriteConflictError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Snapshot:
    """A document as fetched from the store, with its version if reported."""
    record: Any
    version: Optional[int] = None


@dataclass
class CacheEntry:
    record: Any
    fetched_at: float
    version: Optional[int] = None


def _extract_version(payload: Dict[str, Any]) -> Optional[int]:
    metadata = payload.get("metadata") or {}
    version = metadata.get("version")
    return version if isinstance(version, int) else None


class JsonBinClient:
    """
    Thin async client over the JSONBin v3 bins API.

    There is no partial update: every write resends the complete document.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 15.0,
        cache_ttl: float = 30.0,
        versioning: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.versioning = versioning
        self._transport = transport
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _headers(self, update: bool = False) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Master-Key"] = self.api_key
        if update:
            headers["X-Bin-Versioning"] = "true" if self.versioning else "false"
        return headers

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Document store timeout: {method} {url}")
            raise StorageError("Document store is taking too long to respond") from e
        except httpx.RequestError as e:
            logger.error(f"Network error talking to document store: {e}")
            raise StorageError(f"Unable to reach document store: {e}") from e

        if not response.is_success:
            logger.error(
                f"Document store error: {response.status_code} - {response.text[:200]}"
            )
            raise StorageError(
                f"Document store returned HTTP {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise StorageError(
                "Document store returned invalid JSON",
                status=response.status_code,
                body=response.text,
            ) from e

    def lock(self, collection_id: str) -> asyncio.Lock:
        """Lock serialising read-modify-write cycles on one collection."""
        return self._locks.setdefault(collection_id, asyncio.Lock())

    async def fetch(self, collection_id: str) -> Snapshot:
        """
        Fetches the latest document, bypassing the cache, and refreshes the cache entry.

        Raises:
            StorageError: On any transport failure or non-success response
        """
        payload = await self._request(
            "GET", f"{self.base_url}/{collection_id}/latest", headers=self._headers()
        )
        snapshot = Snapshot(record=payload.get("record"), version=_extract_version(payload))
        self._cache[collection_id] = CacheEntry(
            record=copy.deepcopy(snapshot.record),
            fetched_at=self._clock(),
            version=snapshot.version,
        )
        return snapshot

    async def read(self, collection_id: str, use_cache: bool = True) -> Any:
        """
        Reads a collection document.

        Args:
            collection_id: Bin id
            use_cache: Serve from memory if the cached copy is younger than the TTL

        Returns:
            The document (a private copy, safe to mutate)

        Raises:
            StorageError: If the fetch fails and nothing is cached
        """
        entry = self._cache.get(collection_id)
        if use_cache and entry is not None and self._clock() - entry.fetched_at < self.cache_ttl:
            logger.debug("Cache hit", extra={"collection": collection_id})
            return copy.deepcopy(entry.record)

        try:
            snapshot = await self.fetch(collection_id)
        except StorageError:
            if entry is not None:
                logger.warning(
                    "Serving stale cached document after fetch failure",
                    extra={"collection": collection_id}
                )
                return copy.deepcopy(entry.record)
            raise

        return copy.deepcopy(snapshot.record)

    async def write(
        self,
        collection_id: str,
        document: Any,
        expected_version: Optional[int] = None,
    ) -> Any:
        """
        Replaces the whole remote document and refreshes the cache.

        Args:
            collection_id: Bin id
            document: Full replacement document
            expected_version: Version observed when the document was read

        Returns:
            The stored document as echoed by the store

        Raises:
            WriteConflictError: If the stored version moved since it was read
            StorageError: On any transport failure or non-success response
        """
        if expected_version is not None and self.versioning:
            latest = await self._request(
                "GET", f"{self.base_url}/{collection_id}/latest", headers=self._headers()
            )
            latest_version = _extract_version(latest)
            if latest_version is not None and latest_version != expected_version:
                logger.warning(
                    f"Version conflict: expected {expected_version}, found {latest_version}",
                    extra={"collection": collection_id}
                )
                raise WriteConflictError(
                    details={"expected": expected_version, "found": latest_version}
                )

        payload = await self._request(
            "PUT",
            f"{self.base_url}/{collection_id}",
            headers=self._headers(update=True),
            json=document,
        )
        record = payload.get("record", document)
        self._cache[collection_id] = CacheEntry(
            record=copy.deepcopy(record),
            fetched_at=self._clock(),
            version=_extract_version(payload),
        )
        return record

    async def create_bin(self, name: str, document: Any, private: bool = True) -> str:
        """
        Creates a new bin holding `document` and returns its id.
        """
        headers = self._headers()
        headers["X-Bin-Name"] = name
        headers["X-Bin-Private"] = "true" if private else "false"
        payload = await self._request("POST", self.base_url, headers=headers, json=document)
        bin_id = (payload.get("metadata") or {}).get("id")
        if not bin_id:
            raise StorageError("Document store did not return a bin id", body=str(payload))
        logger.info(f"Created bin {name}: {bin_id}")
        return bin_id

    def invalidate(self, collection_id: Optional[str] = None):
        """Drops one cache entry, or the whole cache."""
        if collection_id is None:
            self._cache.clear()
        else:
            self._cache.pop(collection_id, None)

    async def refresh(self, collection_ids: Iterable[str]) -> int:
        """
        Re-reads the given collections into the cache.

        Returns:
            Number of collections refreshed successfully
        """
        ids = [collection_id for collection_id in collection_ids if collection_id]
        results = await asyncio.gather(
            *(self.fetch(collection_id) for collection_id in ids),
            return_exceptions=True,
        )
        refreshed = 0
        for collection_id, result in zip(ids, results):
            if isinstance(result, StorageError):
                logger.warning(f"Cache refresh failed: {result.message}", extra={"collection": collection_id})
            elif isinstance(result, BaseException):
                raise result
            else:
                refreshed += 1
        return refreshed

    async def ping(self, collection_id: str) -> bool:
        """
        Checks the store is reachable by fetching one document.
        """
        if not collection_id:
            return False
        try:
            await self.fetch(collection_id)
            return True
        except StorageError as e:
            logger.error(f"Document store health check failed: {e.message}")
            return False
