from __future__ import annotations

import threading
from collections import Counter
from typing import Dict


class ScanStats:
    """Named counters for files the scan skipped or failed on."""

    def __init__(self) -> None:
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def increment(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def dump(self) -> str:
        with self._lock:
            if not self._counts:
                return "No files stats"
            lines = ["Skipped files:"]
            for name in sorted(self._counts):
                lines.append(f"  {name}: {self._counts[name]}")
        return "\n".join(lines) + "\n"
