"""
Hash-per-entity repository.

Each entity type lives in one hash (``bucket``) whose fields are record ids
and whose values are the JSON text of the record. Updates are
read-merge-write without any locking: concurrent writers to the same id race
and the last write wins.
"""

from __future__ import annotations

import functools
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from pos_api.core.revalidation import PathRevalidator
from pos_api.core.utils import generate_id, isoformat, parse_iso, reference_number, utc_now
from pos_api.db.errors import RecordNotFoundError, SerializationError, StoreError
from pos_api.db.store import KVStore

logger = logging.getLogger(__name__)

Record = dict[str, Any]
PROTECTED_FIELDS = ("id", "createdAt")


def absorbs(fallback: Any = None):
    """
    In compatibility mode, log a StoreError and return ``fallback`` instead.

    ``fallback`` may be a zero-argument factory (``list``, ``dict``) so each
    call gets a fresh empty value.
    """

    def decorate(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except StoreError as exc:
                if not self.store.compat:
                    raise
                logger.error("Failed to %s (%s): %s", method.__name__, self.bucket, exc)
                return fallback() if callable(fallback) else fallback

        return wrapper

    return decorate


def encode_record(record: Record) -> str:
    try:
        return json.dumps(record, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Record is not JSON serializable: {exc}") from exc


def decode_record(raw: str, where: str = "") -> Record:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Corrupt JSON record {where}".strip()) from exc
    if not isinstance(value, dict):
        raise SerializationError(f"Stored value {where} is not an object".strip())
    return value


class HashRepository:
    bucket = ""
    id_prefix = ""
    revalidate_paths: tuple[str, ...] = ()

    def __init__(
        self,
        store: KVStore,
        revalidator: PathRevalidator | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not self.bucket:
            raise TypeError(f"{type(self).__name__} must define a bucket")
        self.store = store
        self.revalidator = revalidator
        self._clock = clock or utc_now

    # ------------------------------------------------------------------ helpers
    def now(self) -> str:
        return isoformat(self._clock())

    def stamp_after(self, previous: str | None) -> str:
        """``now()``, moved 1 ms past ``previous`` when the clock has not advanced beyond it."""
        now = self.now()
        last = parse_iso(previous)
        if last is not None and now <= previous:
            return isoformat(last + timedelta(milliseconds=1))
        return now

    def new_id(self) -> str:
        return generate_id(self.id_prefix)

    def revalidate(self, *extra_paths: str) -> None:
        if not self.revalidator:
            return
        for path in (*self.revalidate_paths, *extra_paths):
            self.revalidator.revalidate(path)

    def _read_hash(self, key: str) -> list[Record]:
        return [decode_record(raw, f"{key}/{field}") for field, raw in self.store.hgetall(key).items()]

    def _write(self, record: Record, key: str | None = None) -> None:
        self.store.hset(key or self.bucket, record["id"], encode_record(record))

    def _load(self, record_id: str) -> Optional[Record]:
        raw = self.store.hget(self.bucket, record_id)
        if raw is None:
            return None
        return decode_record(raw, f"{self.bucket}/{record_id}")

    def present(self, record: Record) -> Record:
        """Shape a stored record for callers (hook for hiding internal fields)."""
        return record

    # ------------------------------------------------------------------ reads
    @absorbs(list)
    def get_all(self) -> list[Record]:
        return [self.present(record) for record in self._read_hash(self.bucket)]

    @absorbs(None)
    def get_by_id(self, record_id: str) -> Optional[Record]:
        record = self._load(record_id)
        return self.present(record) if record is not None else None

    @absorbs(0)
    def count(self) -> int:
        return self.store.hlen(self.bucket)

    def find(self, predicate: Callable[[Record], bool]) -> list[Record]:
        return [record for record in self.get_all() if predicate(record)]

    def get_by_business(self, business_id: str) -> list[Record]:
        return self.find(lambda record: record.get("businessId") == business_id)

    # ------------------------------------------------------------------ writes
    def build(self, data: Record, record_id: str | None = None) -> Record:
        now = self.now()
        record = {key: value for key, value in data.items() if key not in ("id", "createdAt", "updatedAt")}
        return {"id": record_id or self.new_id(), **record, "createdAt": now, "updatedAt": now}

    @absorbs(None)
    def create(self, data: Record) -> Record:
        record = self.build(data)
        self._write(record)
        self.revalidate()
        return self.present(record)

    def _apply_update(self, record_id: str, changes: Record) -> Record:
        existing = self._load(record_id)
        if existing is None:
            raise RecordNotFoundError(f"{self.bucket} record '{record_id}' not found")
        merged = {**existing, **{k: v for k, v in changes.items() if k not in PROTECTED_FIELDS}}
        merged["updatedAt"] = self.stamp_after(existing.get("updatedAt"))
        self._write(merged)
        self.revalidate()
        return merged

    def _remove(self, record_id: str) -> None:
        if not self.store.hdel(self.bucket, record_id):
            raise RecordNotFoundError(f"{self.bucket} record '{record_id}' not found")
        self.revalidate()

    @absorbs(None)
    def update(self, record_id: str, changes: Record) -> Record:
        return self.present(self._apply_update(record_id, changes))

    @absorbs(False)
    def delete(self, record_id: str) -> bool:
        self._remove(record_id)
        return True

    # ------------------------------------------------------------------ seeding
    def seed_records(self) -> Iterable[Record]:
        return ()

    @absorbs(False)
    def seed_if_empty(self) -> bool:
        """Insert ``seed_records()`` when the bucket is empty; returns whether anything was written."""
        if self.store.hlen(self.bucket) > 0:
            return False
        created = 0
        for data in self.seed_records():
            if self.create(data):
                created += 1
        if created:
            logger.info("Seeded %d %s records", created, self.bucket)
        return created > 0


class DocumentRepository(HashRepository):
    """
    Header records with line items kept in a per-document hash
    (``{items_bucket}:{document_id}``) and a human-facing reference number.
    """

    items_bucket = ""
    parent_field = ""
    number_field = ""
    number_prefix = ""

    def items_key(self, document_id: str) -> str:
        return f"{self.items_bucket}:{document_id}"

    @absorbs(list)
    def get_items(self, document_id: str) -> list[Record]:
        return self._read_hash(self.items_key(document_id))

    def _write_item(self, document_id: str, item: Record, item_id: str | None = None) -> Record:
        now = self.now()
        skip = ("id", "createdAt", "updatedAt", self.parent_field)
        record = {
            "id": item_id or item.get("id") or self.new_id(),
            self.parent_field: document_id,
            **{key: value for key, value in item.items() if key not in skip},
            "createdAt": item.get("createdAt") or now,
            "updatedAt": now,
        }
        self._write(record, self.items_key(document_id))
        return record

    def _insert_document(self, data: Record, items: Iterable[Record] = ()) -> Record:
        header = dict(data)
        header[self.number_field] = reference_number(self.number_prefix)
        record = self.build(header)
        self._write(record)
        for item in items:
            self._write_item(record["id"], item, item_id=self.new_id())
        self.revalidate()
        return record

    @absorbs(None)
    def create_with_items(self, data: Record, items: Iterable[Record] = ()) -> Record:
        return self.present(self._insert_document(data, items))

    def create(self, data: Record, items: Iterable[Record] = ()) -> Record:
        return self.create_with_items(data, items)

    @absorbs(False)
    def delete(self, record_id: str) -> bool:
        self._remove(record_id)
        try:
            self.store.delete(self.items_key(record_id))
        except StoreError as exc:
            logger.error("Could not remove items of %s %s: %s", self.bucket, record_id, exc)
        return True

    def with_items(self, record: Optional[Record]) -> Optional[Record]:
        if record is None:
            return None
        return {**record, "items": self.get_items(record["id"])}
