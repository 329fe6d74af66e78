"""Unbounded error sink drained by a single handler thread."""
from __future__ import annotations

import queue
import threading
from typing import Callable, Optional

from .errors import HashError, LifecycleError
from .util import LogCallback, emit_log

ErrorHandler = Callable[[HashError], None]

_CLOSED = object()


class ErrorChannel:
    def __init__(self, log_cb: Optional[LogCallback] = None) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._consumer: Optional[threading.Thread] = None
        self._closed = False
        self._log_cb = log_cb
        self.delivered = 0

    def report(self, err: HashError) -> None:
        if self._closed:
            raise LifecycleError(f"error reported after channel closed: {err}")
        self._queue.put(err)

    def consume(self, handler: ErrorHandler) -> None:
        """Start a thread that calls ``handler`` once per reported error, in delivery order."""
        with self._lock:
            if self._consumer is not None:
                raise LifecycleError("an error handler is already registered")
            if self._closed:
                raise LifecycleError("cannot consume from a closed error channel")
            self._start(handler)

    def _start(self, handler: ErrorHandler) -> None:
        self._consumer = threading.Thread(
            target=self._drain,
            args=(handler,),
            name="spotcheck-errors",
            daemon=True,
        )
        self._consumer.start()

    def _drain(self, handler: ErrorHandler) -> None:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            try:
                handler(item)  # type: ignore[arg-type]
            except Exception as exc:
                emit_log(f"[WARN] error handler failed on {item}: {exc}", self._log_cb)
            self.delivered += 1

    def _log_error(self, err: HashError) -> None:
        emit_log(f"[ERROR] {err}", self._log_cb)

    def close(self) -> None:
        """Stop accepting errors and block until the handler has seen every one."""
        with self._lock:
            if self._closed:
                raise LifecycleError("error channel closed twice")
            self._closed = True
            if self._consumer is None:
                self._start(self._log_error)
        self._queue.put(_CLOSED)
        assert self._consumer is not None
        self._consumer.join()

    @property
    def closed(self) -> bool:
        return self._closed
