"""
app/db/repository.py

Purpose: Typed access to one collection document

- Parses stored arrays into records (schema check at the storage boundary)
- List / find / filter are linear scans over the whole collection
- Every mutation is a locked read-modify-write of the whole document,
  retried when the store reports a concurrent version change
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    DocumentValidationError,
    ResourceNotFoundError,
    StorageError,
    WriteConflictError,
)
from app.core.logging import get_logger
from app.db.collections import Collection, collection_key
from app.db.jsonbin import JsonBinClient
from app.models.base import Record
from utils.time_utils import utcnow

logger = get_logger(__name__)

T = TypeVar("T", bound=Record)


@dataclass
class Unchanged:
    """Returned from a mutation to skip the write-back."""
    value: Any = None


async def read_modify_write(
    storage: JsonBinClient,
    bin_id: str,
    apply: Callable[[Any], Any],
    max_retries: int = 3,
    entity: str = "document",
) -> Any:
    """
    Locked fetch -> apply -> versioned write cycle on one bin.

    `apply(document)` returns `(new_document, result)` or `Unchanged(result)`.
    """
    max_retries = max(1, max_retries)
    async with storage.lock(bin_id):
        for attempt in range(1, max_retries + 1):
            snapshot = await storage.fetch(bin_id)
            outcome = apply(snapshot.record)

            if isinstance(outcome, Unchanged):
                return outcome.value

            document, result = outcome
            try:
                await storage.write(bin_id, document, expected_version=snapshot.version)
                return result
            except WriteConflictError:
                if attempt == max_retries:
                    raise
                logger.warning(
                    f"Retrying {entity} write after conflict ({attempt}/{max_retries})",
                    extra={"collection": bin_id}
                )


class SingletonDocument(Generic[T]):
    """
    A collection document that is itself one record (shop settings).
    """

    def __init__(self, storage: JsonBinClient, bin_id: str, model: Type[T], entity: str, max_retries: int = 3):
        self.storage = storage
        self.bin_id = bin_id
        self.model = model
        self.entity = entity
        self.max_retries = max_retries

    def _parse(self, document: Any) -> T:
        try:
            return self.model.model_validate(document or {})
        except PydanticValidationError as e:
            raise DocumentValidationError(
                f"Malformed {self.entity} document",
                details={"errors": str(e)},
            ) from e

    async def get(self) -> T:
        """
        The stored record, or defaults if the store is unreachable.
        """
        try:
            document = await self.storage.read(self.bin_id)
        except StorageError as e:
            logger.error(f"Failed to read {self.entity}: {e.message}")
            return self.model()
        return self._parse(document)

    async def update(self, changes: Dict[str, Any]) -> T:
        def apply(document: Any):
            current = self._parse(document)
            data = dict(changes)
            if "updated_at" in self.model.model_fields:
                data["updated_at"] = utcnow()
            updated = current.model_copy(update=data)
            return updated.to_document(), updated

        return await read_modify_write(
            self.storage, self.bin_id, apply, max_retries=self.max_retries, entity=self.entity
        )


class Repository(Generic[T]):
    """
    One record array inside one collection document.
    """

    def __init__(
        self,
        storage: JsonBinClient,
        collection: Collection,
        bin_id: str,
        model: Type[T],
        entity: str,
        key: Optional[str] = None,
        max_retries: int = 3,
    ):
        self.storage = storage
        self.collection = collection
        self.bin_id = bin_id
        self.model = model
        self.entity = entity
        self.key = key or collection_key(collection)
        self.max_retries = max(1, max_retries)

    def _parse(self, document: Any, strict: bool = True) -> List[T]:
        """
        Validates the record array.

        Strict parsing (write cycles) raises DocumentValidationError on any bad
        record so nothing is dropped on write-back. Lenient parsing (reads) logs
        and skips bad records, and treats a malformed document as empty.
        """
        if document is None:
            document = {}
        items = document.get(self.key) if isinstance(document, dict) else None
        if not isinstance(document, dict) or not isinstance(items or [], list):
            message = f"{self.collection.value}.{self.key} is not a list of records"
            if strict:
                raise DocumentValidationError(message, details={"collection": self.collection.value})
            logger.error(message, extra={"collection": self.collection.value})
            return []

        records = []
        for index, item in enumerate(items or []):
            try:
                records.append(self.model.model_validate(item))
            except PydanticValidationError as e:
                logger.error(
                    f"Malformed {self.entity} record at index {index}: {e.error_count()} error(s)",
                    extra={"collection": self.collection.value}
                )
                if strict:
                    raise DocumentValidationError(
                        f"Malformed {self.entity} record in {self.collection.value}",
                        details={"collection": self.collection.value, "index": index},
                    ) from e
        return records

    def _build(self, document: Any, records: List[T]) -> Dict[str, Any]:
        built = dict(document) if isinstance(document, dict) else {}
        built[self.key] = [record.to_document() for record in records]
        return built

    async def list(self, use_cache: bool = True) -> List[T]:
        """
        All records of the collection; an empty list if the store is unreachable.
        """
        try:
            document = await self.storage.read(self.bin_id, use_cache=use_cache)
        except StorageError as e:
            logger.error(
                f"Failed to read {self.entity} collection: {e.message}",
                extra={"collection": self.collection.value}
            )
            return []
        return self._parse(document, strict=False)

    async def find(self, predicate: Callable[[T], bool], use_cache: bool = True) -> Optional[T]:
        for record in await self.list(use_cache=use_cache):
            if predicate(record):
                return record
        return None

    async def get(self, record_id: str, use_cache: bool = True) -> Optional[T]:
        return await self.find(lambda record: record.id == record_id, use_cache=use_cache)

    async def filter(self, predicate: Callable[[T], bool], use_cache: bool = True) -> List[T]:
        return [record for record in await self.list(use_cache=use_cache) if predicate(record)]

    async def mutate(self, fn: Callable[[List[T]], Any]) -> Any:
        """
        Applies `fn` to a freshly fetched record list and writes the whole document back.

        `fn` mutates the list in place and returns the operation result. Returning
        `Unchanged(value)` skips the write. `fn` may run more than once when a
        concurrent write is detected, so it must only touch the list it is given.

        Raises:
            StorageError: If the store cannot be read or written
            WriteConflictError: If every retry hit a concurrent write
        """
        def apply(document: Any):
            records = self._parse(document)
            result = fn(records)
            if isinstance(result, Unchanged):
                return result
            return self._build(document, records), result

        return await read_modify_write(
            self.storage, self.bin_id, apply, max_retries=self.max_retries, entity=self.entity
        )

    async def create(self, record: T) -> T:
        def append(records: List[T]) -> T:
            records.append(record)
            return record

        created = await self.mutate(append)
        logger.info(f"{self.entity} created: {created.id}", extra={"collection": self.collection.value})
        return created

    async def update_where(self, predicate: Callable[[T], bool], transform: Callable[[T], T]) -> T:
        """
        Replaces the first matching record with `transform(record)`.

        Raises:
            ResourceNotFoundError: If nothing matches
        """
        def apply(records: List[T]) -> T:
            for index, record in enumerate(records):
                if predicate(record):
                    records[index] = transform(record)
                    return records[index]
            raise ResourceNotFoundError(f"{self.entity} not found")

        return await self.mutate(apply)

    async def update(self, record_id: str, changes: Dict[str, Any], stamp: bool = True) -> T:
        """
        Shallow-merges `changes` (snake_case field names) into a record.
        """
        def transform(record: T) -> T:
            data = dict(changes)
            if stamp and "updated_at" in self.model.model_fields:
                data["updated_at"] = utcnow()
            return record.model_copy(update=data)

        try:
            return await self.update_where(lambda record: record.id == record_id, transform)
        except ResourceNotFoundError as e:
            e.details = {"id": record_id}
            raise

    async def delete_where(self, predicate: Callable[[T], bool]) -> int:
        """
        Removes every matching record.

        Returns:
            Number of records removed
        """
        def apply(records: List[T]):
            kept = [record for record in records if not predicate(record)]
            removed = len(records) - len(kept)
            if not removed:
                return Unchanged(0)
            records[:] = kept
            return removed

        removed = await self.mutate(apply)
        if removed:
            logger.info(f"Deleted {removed} {self.entity} record(s)", extra={"collection": self.collection.value})
        return removed

    async def delete(self, record_id: str) -> bool:
        return await self.delete_where(lambda record: record.id == record_id) > 0
