"""TinyDB-backed adapter for key record storage.

Every operation opens the JSON file fresh, so the on-disk document is the only
copy of the key table. Read-decide-write sequences are serialized by a
thread lock plus an advisory file lock shared with other processes (the
CLI and the API server may run side by side against the same file).
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any, Callable, Iterator, cast

from pydantic import ValidationError
from tinydb import Query, TinyDB
from tinydb.storages import Storage
from tinydb.table import Table

from keygate.core.config import config
from keygate.core.exceptions import DuplicateKeyError, KeyNotFoundError, PersistenceError
from keygate.core.key_models import KeyRecord, OutcomeT, Transition
from keygate.core.logging import get_logger
from keygate.core.ports import KeyStorePort, Mutator

if TYPE_CHECKING:  # pragma: no cover - typing only
    from tinydb.queries import QueryLike  # type: ignore
else:
    QueryLike = Any  # type: ignore[misc,assignment]

logger = get_logger(__name__)

TABLE_NAME = "keys"
LOCK_POLL_INTERVAL = 0.01


class AtomicJSONStorage(Storage):
    """TinyDB storage that replaces the JSON file atomically on every write."""

    def __init__(self, path: str, encoding: str = "utf-8") -> None:
        self._path = Path(path)
        self._encoding = encoding

    def read(self) -> dict[str, dict[str, Any]] | None:
        try:
            text = self._path.read_text(encoding=self._encoding)
        except FileNotFoundError:
            return None
        if not text.strip():
            return None
        return json.loads(text)

    def write(self, data: dict[str, dict[str, Any]]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding=self._encoding) as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def close(self) -> None:
        return None


def _token_is(token: str) -> QueryLike:
    q = Query()
    return cast(QueryLike, q.token == token)


class TinyDBKeyStore(KeyStorePort):
    """JSON-file key store with serialized, atomic read-mutate-write."""

    def __init__(
        self,
        db_path: Path | None = None,
        *,
        lock_timeout: float | None = None,
        write_retries: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the JSON file. Defaults to DATA_DIR/KEYS_DB_FILENAME.
            lock_timeout: Seconds to wait for exclusive access before failing.
            write_retries: Extra write attempts before a mutation is abandoned.
        """
        data_dir = Path(getattr(config, "DATA_DIR", Path("/data")))
        self._db_path = db_path or (data_dir / config.KEYS_DB_FILENAME)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock_path = self._db_path.with_name(f"{self._db_path.name}.lock")
        self._lock_timeout = (
            lock_timeout if lock_timeout is not None else config.STORE_LOCK_TIMEOUT_SECONDS
        )
        self._write_retries = (
            write_retries if write_retries is not None else config.STORE_WRITE_RETRIES
        )
        self._lock = Lock()

    @property
    def path(self) -> Path:
        """Return the path of the backing JSON file."""
        return self._db_path

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the thread lock and the file lock, waiting at most ``lock_timeout``."""
        deadline = time.monotonic() + self._lock_timeout
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise PersistenceError("Timed out waiting for the key store lock")
        try:
            try:
                handle = open(self._lock_path, "a+", encoding="utf-8")  # noqa: SIM115
            except OSError as exc:
                raise PersistenceError(f"Cannot open lock file {self._lock_path}") from exc
            with handle:
                self._acquire_file_lock(handle.fileno(), deadline)
                try:
                    yield
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock.release()

    @staticmethod
    def _acquire_file_lock(fileno: int, deadline: float) -> None:
        while True:
            try:
                fcntl.flock(fileno, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise PersistenceError(
                        "Timed out waiting for the key store file lock"
                    ) from None
                time.sleep(LOCK_POLL_INTERVAL)

    @contextmanager
    def _table(self) -> Iterator[Table]:
        """Open the key table without query caching."""
        db = TinyDB(str(self._db_path), storage=AtomicJSONStorage)
        try:
            yield db.table(TABLE_NAME, cache_size=0)
        finally:
            db.close()

    def _read_documents(self) -> dict[str, dict[str, Any]]:
        try:
            with self._table() as table:
                documents = table.all()
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read key store {self._db_path}") from exc
        if any("token" not in doc for doc in documents):
            raise PersistenceError(
                f"Key store {self._db_path} holds a record without a token"
            )
        return {doc["token"]: dict(doc) for doc in documents}

    def _decode(self, document: dict[str, Any]) -> KeyRecord:
        try:
            return KeyRecord.from_document(document)
        except ValidationError as exc:
            raise PersistenceError(
                f"Corrupt key record {document.get('token')!r} in {self._db_path}"
            ) from exc

    def _write(self, operation: Callable[[Table], Any]) -> None:
        """Apply ``operation`` to the table, retrying failed writes."""
        attempts = self._write_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                with self._table() as table:
                    operation(table)
                return
            except OSError as exc:
                if attempt == attempts:
                    logger.error(
                        "key store write failed; mutation discarded",
                        extra={"path": str(self._db_path), "attempts": attempts},
                    )
                    raise PersistenceError(f"Cannot write key store {self._db_path}") from exc
                logger.warning(
                    "key store write failed, retrying",
                    extra={"path": str(self._db_path), "attempt": attempt},
                )

    def load(self) -> dict[str, KeyRecord]:
        """Return every stored record keyed by token."""
        with self._exclusive():
            documents = self._read_documents()
        return {token: self._decode(doc) for token, doc in documents.items()}

    def with_record(self, token: str, mutator: Mutator[OutcomeT]) -> Transition[OutcomeT]:
        """Run ``mutator`` against the stored record and commit its result atomically."""
        with self._exclusive():
            document = self._read_documents().get(token)
            if document is None:
                raise KeyNotFoundError(token)
            current = self._decode(document)
            transition = mutator(current)
            updated = transition.record
            if updated is not None and updated != current:
                if updated.token != token:
                    raise ValueError("A mutation cannot change a record's token")
                new_document = updated.to_document()
                self._write(lambda table: table.upsert(new_document, _token_is(token)))
        return transition

    def insert(self, record: KeyRecord) -> None:
        """Store a new record; raises DuplicateKeyError if the token exists."""
        with self._exclusive():
            if record.token in self._read_documents():
                raise DuplicateKeyError(record.token)
            document = record.to_document()
            self._write(lambda table: table.insert(document))

    def remove(self, token: str) -> KeyRecord | None:
        """Delete the record for ``token``. Returns the removed record, if any."""
        with self._exclusive():
            document = self._read_documents().get(token)
            if document is None:
                return None
            removed = self._decode(document)
            self._write(lambda table: table.remove(_token_is(token)))
        return removed

    def snapshot(self) -> list[KeyRecord]:
        """Return a point-in-time copy of every stored record."""
        return list(self.load().values())


__all__ = ["AtomicJSONStorage", "TinyDBKeyStore"]
