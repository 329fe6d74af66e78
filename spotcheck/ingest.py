"""Turn a stream of path lines into analyser submissions."""
from __future__ import annotations

import os
import stat
import threading
from typing import Iterable, Optional, Set, Union

from .analyser import DuplicateFileAnalyser
from .config import IngestConfig
from .fstype import BlacklistMatcher, FsTypeError, FsTypeResolver
from .stats import ScanStats
from .util import LogCallback, emit_log


def ingest_paths(
    lines: Iterable[Union[str, bytes]],
    analyser: DuplicateFileAnalyser,
    stats: ScanStats,
    cfg: Optional[IngestConfig] = None,
    resolver: Optional[FsTypeResolver] = None,
    cancelled: Optional[threading.Event] = None,
    log_cb: Optional[LogCallback] = None,
) -> int:
    """Filter ``lines`` down to regular, non-empty files and submit them.

    Byte lines are decoded with ``os.fsdecode`` so paths that are not valid
    UTF-8 still round-trip to ``lstat`` and ``open``.

    Returns the number of paths handed to the analyser.
    """
    cfg = cfg or IngestConfig()
    resolver = resolver or FsTypeResolver()
    blacklist = BlacklistMatcher(cfg.blacklist_filesystems)
    seen: Set[str] = set()
    submitted = 0

    for line in lines:
        if cancelled is not None and cancelled.is_set():
            emit_log("[WARN] ingestion stopped early", log_cb)
            break

        path = os.fsdecode(line).strip()
        if not path:
            stats.increment("blank line")
            continue
        if cfg.dedupe_paths:
            if path in seen:
                stats.increment("duplicate path")
                continue
            seen.add(path)

        try:
            st = os.lstat(path)
        except OSError as e:
            emit_log(f"[WARN] Error getting file info for {path}: {e}", log_cb)
            stats.increment("stat error")
            continue

        mode = st.st_mode
        if stat.S_ISDIR(mode):
            stats.increment("directory")
            continue
        if stat.S_ISLNK(mode):
            stats.increment("symlink")
            continue
        if not stat.S_ISREG(mode):
            emit_log(f"[WARN] skipping special file: {path} (mode: {stat.filemode(mode)})", log_cb)
            stats.increment("special file")
            continue

        fstype = ""
        try:
            fstype = resolver.fs_type(path)
        except FsTypeError:
            emit_log(f"[WARN] couldn't determine fs type for {path}", log_cb)
        if blacklist.is_blacklisted(fstype):
            emit_log(f"[WARN] skipping file: {path}, its on a {fstype} filesystem", log_cb)
            stats.increment("blacklisted filesystem: " + fstype)
            continue

        if st.st_size == 0:
            stats.increment("zero length files")
            continue

        analyser.submit(path, st.st_size)
        submitted += 1

    return submitted
