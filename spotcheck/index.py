"""
Size/hash index shared by the hashing workers.

Two levels: an outer mapping from exact file size to a ``SizeBucket``, guarded
by a reader/writer lock, and inside each bucket a fingerprint -> paths mapping
guarded by the bucket's own mutex. Workers only ever hold one of those locks at
a time, and never while reading a file.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List


class ReadWriteLock:
    """Shared/exclusive lock; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


@dataclass
class SizeBucket:
    size: int
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    by_fingerprint: Dict[int, List[str]] = field(default_factory=dict)

    def add(self, fingerprint: int, path: str) -> None:
        with self.lock:
            self.by_fingerprint.setdefault(fingerprint, []).append(path)


class SizeHashIndex:
    def __init__(self) -> None:
        self._buckets: Dict[int, SizeBucket] = {}
        self._lock = ReadWriteLock()

    def ensure_bucket(self, size: int) -> SizeBucket:
        """Return the bucket for ``size``, creating it on first touch.

        Two workers can both miss on the shared lock for the same new size, so
        the existence test is repeated under the exclusive lock before creating
        anything. Without the second check one of them would replace the
        other's bucket and its paths would be lost.
        """
        with self._lock.read_locked():
            bucket = self._buckets.get(size)
        if bucket is not None:
            return bucket
        with self._lock.write_locked():
            bucket = self._buckets.get(size)
            if bucket is None:
                bucket = SizeBucket(size)
                self._buckets[size] = bucket
            return bucket

    def insert(self, size: int, fingerprint: int, path: str) -> None:
        self.ensure_bucket(size).add(fingerprint, path)

    # The readers below take no locks; callers must ensure writers are done.

    def groups(self) -> List[List[str]]:
        out: List[List[str]] = []
        for bucket in self._buckets.values():
            for paths in bucket.by_fingerprint.values():
                out.append(list(paths))
        return out

    def bucket_count(self) -> int:
        return len(self._buckets)

    def file_count(self) -> int:
        return sum(len(paths) for bucket in self._buckets.values() for paths in bucket.by_fingerprint.values())

    def sizes(self) -> List[int]:
        return sorted(self._buckets)

    def bucket(self, size: int) -> SizeBucket:
        return self._buckets[size]
