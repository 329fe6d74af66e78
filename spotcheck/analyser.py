# spotcheck/analyser.py
"""
Concurrent duplicate analysis:
1. Group submitted files by exact size
2. Within a size, group by a 64-bit content fingerprint (full hash for small
   files, sampled hash at or above the size threshold)

Results are candidates only; a sampled fingerprint can match files that differ
outside the sampled blocks.
"""
from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional

from .channel import ErrorChannel, ErrorHandler
from .config import BLOCK_SIZE, AnalyserConfig
from .errors import HashError, LifecycleError
from .index import SizeHashIndex
from .util import LogCallback, emit_log, fingerprint


@dataclass(frozen=True)
class IntakeItem:
    path: str
    size: int


_STOP = None


class DuplicateFileAnalyser:
    def __init__(self, cfg: Optional[AnalyserConfig] = None, log_cb: Optional[LogCallback] = None) -> None:
        self.cfg = cfg or AnalyserConfig()
        self.index = SizeHashIndex()
        self.errors = ErrorChannel(log_cb)
        self._log_cb = log_cb

        self._intake: "queue.Queue[Optional[IntakeItem]]" = queue.Queue(maxsize=self.cfg.workers)
        self._submit_lock = threading.Lock()
        self._counter_lock = threading.Lock()
        self._closed = False
        self._finished = False
        self._cancelled = threading.Event()
        self._counters: Dict[str, int] = {"submitted": 0, "hashed": 0, "errors": 0, "cancelled": 0}

        self._executor = ThreadPoolExecutor(max_workers=self.cfg.workers, thread_name_prefix="spotcheck-hash")
        self._workers: List[Future] = [self._executor.submit(self._work) for _ in range(self.cfg.workers)]

    def _bump(self, name: str) -> None:
        with self._counter_lock:
            self._counters[name] += 1

    def _work(self) -> None:
        while True:
            item = self._intake.get()
            if item is _STOP:
                return
            self._process(item)

    def _process(self, item: IntakeItem) -> None:
        if self._cancelled.is_set():
            self._bump("cancelled")
            return
        try:
            digest = fingerprint(
                item.path,
                item.size,
                self.cfg.size_threshold,
                self.cfg.skip_blocks,
                BLOCK_SIZE,
            )
            self.index.insert(item.size, digest, item.path)
        except Exception as exc:
            self._bump("errors")
            self.errors.report(HashError(item.path, exc))
            return
        self._bump("hashed")

    def submit(self, path: str, size: int) -> None:
        """Queue one file for analysis; blocks while every worker is busy."""
        if size <= 0:
            raise ValueError(f"size must be positive, got {size} for {path}")
        with self._submit_lock:
            if self._closed:
                raise LifecycleError(f"submit({path!r}) after finish()")
            self._intake.put(IntakeItem(path, size))
            self._bump("submitted")

    def consume_errors(self, handler: ErrorHandler) -> None:
        self.errors.consume(handler)

    def cancel(self) -> None:
        """Skip items not yet started; finish() must still be called."""
        if not self._cancelled.is_set():
            emit_log("[WARN] analysis cancelled; remaining files will be skipped", self._log_cb)
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def finish(self) -> None:
        """Close intake, wait for the workers, then for the error handler."""
        with self._submit_lock:
            if self._closed:
                raise LifecycleError("finish() called more than once")
            self._closed = True
            for _ in self._workers:
                self._intake.put(_STOP)

        # Worker drain: every insert and every error report has happened.
        try:
            self._executor.shutdown(wait=True)
            for fut in self._workers:
                fut.result()
        finally:
            # Error drain: the handler has processed every reported error.
            self.errors.close()
        self._finished = True

    @property
    def finished(self) -> bool:
        return self._finished

    def groups(self) -> List[List[str]]:
        """Every (size, fingerprint) slot, singletons included."""
        if not self._finished:
            raise LifecycleError("groups() is only valid after finish() returns")
        return self.index.groups()

    def stats(self) -> Dict[str, int]:
        with self._counter_lock:
            return dict(self._counters)

    def dump(self) -> str:
        return f"{self.index.file_count()} files analysed, {self.index.bucket_count()} size buckets"
