"""Filesystem type lookup for scanned paths, plus the blacklist check."""
from __future__ import annotations

import os
from typing import Dict, Iterable, List, Optional, Tuple

import psutil


class FsTypeError(OSError):
    pass


class FsTypeResolver:
    """Map a path to the type of the filesystem it lives on.

    The mount table is read once, on first lookup, and the longest mount point
    that contains the resolved path wins.
    """

    def __init__(self, mounts: Optional[Iterable[Tuple[str, str]]] = None) -> None:
        self._mounts: Optional[List[Tuple[str, str]]] = None
        if mounts is not None:
            self._mounts = self._sorted(mounts)

    @staticmethod
    def _sorted(mounts: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
        return sorted(mounts, key=lambda m: len(m[0]), reverse=True)

    def _load(self) -> List[Tuple[str, str]]:
        if self._mounts is None:
            try:
                parts = psutil.disk_partitions(all=True)
            except (OSError, RuntimeError) as exc:
                raise FsTypeError(f"cannot read mount table: {exc}") from exc
            self._mounts = self._sorted((p.mountpoint, p.fstype) for p in parts)
        return self._mounts

    def fs_type(self, path: str) -> str:
        real = os.path.realpath(path)
        for mountpoint, fstype in self._load():
            if real == mountpoint:
                return fstype
            prefix = mountpoint if mountpoint.endswith(os.sep) else mountpoint + os.sep
            if real.startswith(prefix):
                return fstype
        raise FsTypeError(f"no mount point found for {path}")


class BlacklistMatcher:
    def __init__(self, blacklist: Iterable[str]) -> None:
        self.blacklist = [b for b in blacklist if b]
        self._cache: Dict[str, bool] = {}

    def is_blacklisted(self, fstype: str) -> bool:
        if not fstype:
            return False
        hit = self._cache.get(fstype)
        if hit is None:
            # substring match: "tmpfs" also catches "devtmpfs"
            hit = any(b in fstype for b in self.blacklist)
            self._cache[fstype] = hit
        return hit
