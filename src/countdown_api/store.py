from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import queue
import tempfile
import threading
from concurrent.futures import Future
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from functools import lru_cache, partial
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from .errors import NotFoundError, StorageReadError, StorageWriteError
from .models import CountdownEntity
from .schemas import CountdownCreate
from .settings import get_settings
from .utils import ensure_utc, generate_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _StoredCountdown(BaseModel):
    """On-disk shape of one countdown."""

    id: str
    title: str
    description: str = ""
    target: datetime
    emoji: str
    color: str

    @field_validator("target")
    @classmethod
    def target_to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


_records_adapter = TypeAdapter(List[_StoredCountdown])


def _seed_records(now: datetime) -> List[_StoredCountdown]:
    first_id = generate_id()
    return [
        _StoredCountdown(
            id=first_id,
            title="Anniversary",
            description="Celebrating love and good times",
            target=now + timedelta(days=30),
            emoji="💖",
            color="#FF6EC7",
        ),
        _StoredCountdown(
            id=generate_id(taken={first_id}),
            title="Vacation",
            description="Sunshine, sea, and serenity",
            target=now + timedelta(days=75),
            emoji="🏝️",
            color="#00D1FF",
        ),
    ]


class WriteQueue:
    """
    Runs submitted jobs one at a time, strictly in submission order, on a
    single worker thread. A job that raises fails only its own future.
    """

    def __init__(self, name: str = "countdown-writer") -> None:
        self._name = name
        self._jobs: "queue.Queue[Optional[Tuple[Callable[[], Any], Future]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def submit(self, job: Callable[[], T]) -> "Future[T]":
        future: "Future[T]" = Future()
        with self._lock:
            if self._closed:
                raise StorageWriteError("write queue is closed")
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
            self._jobs.put((job, future))
        return future

    def _run(self) -> None:
        while True:
            item = self._jobs.get()
            if item is None:
                return
            job, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = job()
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

    def close(self) -> None:
        """Stop accepting jobs and wait for the queued ones to finish."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._jobs.put(None)
        if thread is not None and thread is not threading.current_thread():
            thread.join()


# PUBLIC_INTERFACE
class CountdownStore:
    """
    Durable countdown collection backed by a single JSON file.

    Mutations go through a per-store WriteQueue, so each read-modify-write
    cycle runs in FIFO order. Each cycle also holds an exclusive flock on a
    `.lock` file beside the data file, which keeps it alone against other
    stores and other processes writing the same path. Every write lands in a
    temp file next to the data file and is renamed over it, so readers always
    see a complete list. Reads take no lock and do not wait for the queue.
    """

    def __init__(self, path: Union[str, "os.PathLike[str]"]) -> None:
        self._path = Path(path)
        self._lock_path = self._path.with_name(f".{self._path.name}.lock")
        self._queue = WriteQueue(name=f"countdown-writer:{self._path.name}")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    # -------------------- reads --------------------
    def load(self) -> List[CountdownEntity]:
        """
        Read and validate the data file. Raises StorageReadError when the
        file is missing, unreadable, unparsable or holds duplicate ids.
        """
        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StorageReadError(f"Cannot read {self._path}: {e}") from e
        try:
            records = _records_adapter.validate_json(raw)
        except ValidationError as e:
            raise StorageReadError(f"Invalid countdown data in {self._path}: {e}") from e

        seen = set()
        for record in records:
            if record.id in seen:
                raise StorageReadError(f"Duplicate countdown id {record.id!r} in {self._path}")
            seen.add(record.id)
        return [CountdownEntity(**record.model_dump()) for record in records]  # type: ignore[typeddict-item]

    def list(self) -> List[CountdownEntity]:
        """
        Return all countdowns in stored order. A read fault is logged and
        reported as an empty list.
        """
        try:
            return self.load()
        except StorageReadError:
            logger.exception("Countdown data unavailable; serving an empty list")
            return []

    def get(self, countdown_id: str) -> Optional[CountdownEntity]:
        """Return a countdown by id, or None if not found."""
        for item in self.load():
            if item["id"] == countdown_id:
                return item
        return None

    # -------------------- writes --------------------
    def initialize(self) -> None:
        """Create the data file with example countdowns if it does not exist yet."""
        self._queue.submit(self._initialize).result()

    def insert(self, data: CountdownCreate) -> CountdownEntity:
        return self._queue.submit(partial(self._insert, data)).result()

    def update(self, countdown_id: str, data: CountdownCreate) -> CountdownEntity:
        """Replace every field except the id. Raises NotFoundError for an unknown id."""
        return self._queue.submit(partial(self._update, countdown_id, data)).result()

    def delete(self, countdown_id: str) -> None:
        """Remove a countdown. Raises NotFoundError for an unknown id."""
        self._queue.submit(partial(self._delete, countdown_id)).result()

    # -------------------- async variants --------------------
    async def alist(self) -> List[CountdownEntity]:
        return await asyncio.to_thread(self.list)

    async def ainsert(self, data: CountdownCreate) -> CountdownEntity:
        return await self._wait(self._queue.submit(partial(self._insert, data)))

    async def aupdate(self, countdown_id: str, data: CountdownCreate) -> CountdownEntity:
        return await self._wait(self._queue.submit(partial(self._update, countdown_id, data)))

    async def adelete(self, countdown_id: str) -> None:
        await self._wait(self._queue.submit(partial(self._delete, countdown_id)))

    @staticmethod
    async def _wait(future: "Future[T]") -> T:
        # Shielded so a cancelled caller never drops its queued write
        return await asyncio.shield(asyncio.wrap_future(future))

    def close(self) -> None:
        self._queue.close()

    # -------------------- queued jobs --------------------
    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the cross-process write lock for one read-modify-write cycle."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self._lock_path, "a")
        except OSError as e:
            logger.exception("Failed to open lock file %s", self._lock_path)
            raise StorageWriteError(f"Cannot lock {self._path}: {e}") from e
        # Closing the handle releases the lock
        with handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            yield

    def _initialize(self) -> None:
        with self._exclusive():
            if self._path.exists():
                return
            seeds = _seed_records(datetime.now(timezone.utc))
            self._write(seeds)
        logger.info("Created %s with %d example countdowns", self._path, len(seeds))

    def _current(self) -> List[_StoredCountdown]:
        if not self._path.exists():
            return []
        return [_StoredCountdown(**item) for item in self.load()]

    def _insert(self, data: CountdownCreate) -> CountdownEntity:
        fields = self._fields(data)
        with self._exclusive():
            records = self._current()
            record = _StoredCountdown(id=generate_id(taken={r.id for r in records}), **fields)
            records.append(record)
            self._write(records)
        logger.debug("Inserted countdown %s", record.id)
        return CountdownEntity(**record.model_dump())  # type: ignore[typeddict-item]

    def _update(self, countdown_id: str, data: CountdownCreate) -> CountdownEntity:
        fields = self._fields(data)
        with self._exclusive():
            records = self._current()
            for idx, existing in enumerate(records):
                if existing.id == countdown_id:
                    updated = _StoredCountdown(id=existing.id, **fields)
                    records[idx] = updated
                    self._write(records)
                    break
            else:
                raise NotFoundError(countdown_id)
        logger.debug("Updated countdown %s", countdown_id)
        return CountdownEntity(**updated.model_dump())  # type: ignore[typeddict-item]

    def _delete(self, countdown_id: str) -> None:
        with self._exclusive():
            records = self._current()
            remaining = [r for r in records if r.id != countdown_id]
            if len(remaining) == len(records):
                raise NotFoundError(countdown_id)
            self._write(remaining)
        logger.debug("Deleted countdown %s", countdown_id)

    @staticmethod
    def _fields(data: CountdownCreate) -> dict:
        if data.target is None:
            raise ValueError("countdown target is required")
        return {
            "title": data.title,
            "description": data.description,
            "target": data.target,
            "emoji": data.emoji,
            "color": data.color,
        }

    def _write(self, records: List[_StoredCountdown]) -> None:
        payload = _records_adapter.dump_json(records, indent=2)
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self._path.parent), prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError as e:
            logger.exception("Failed to write %s", self._path)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageWriteError(f"Cannot write {self._path}: {e}") from e


@lru_cache(maxsize=None)
def _store_for(path: str) -> CountdownStore:
    return CountdownStore(path)


# PUBLIC_INTERFACE
def get_store() -> CountdownStore:
    """
    Return the process-wide store for the configured data file. All callers
    sharing a path share one write queue.
    """
    return _store_for(os.path.abspath(get_settings().data_file))


def close_store(store: Optional[CountdownStore] = None) -> None:
    """
    Drain and close `store` (the configured one by default) and drop the
    cached instances, so the next get_store() builds a fresh one.
    """
    (store or get_store()).close()
    _store_for.cache_clear()
