"""
Optional second pass: confirm candidate groups with a full BLAKE3 digest.

Sampled fingerprints can group large files that differ outside the sampled
blocks; this pass reads every byte of every candidate and splits groups whose
members disagree.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence

from .util import LogCallback, blake3_file, emit_log


def verify_groups(
    groups: Sequence[Sequence[str]],
    max_workers: int = 4,
    chunk_bytes: int = 2 * 1024 * 1024,
    log_cb: Optional[LogCallback] = None,
) -> List[List[str]]:
    candidates = [list(g) for g in groups if len(g) > 1]
    total = sum(len(g) for g in candidates)
    if not candidates:
        return []

    emit_log(f"[INFO] Verifying {len(candidates):,} candidate groups ({total:,} files) with BLAKE3", log_cb)

    digests: Dict[str, str] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(blake3_file, path, chunk_bytes): path for group in candidates for path in group}
        for fut in as_completed(futures):
            path = futures[fut]
            try:
                digests[path] = fut.result()
            except OSError as e:
                emit_log(f"[WARN] Failed to verify {path}: {e}", log_cb)

    confirmed: List[List[str]] = []
    for group in candidates:
        by_digest: Dict[str, List[str]] = {}
        for path in group:
            digest = digests.get(path)
            if digest is None:
                continue
            by_digest.setdefault(digest, []).append(path)
        confirmed.extend(members for members in by_digest.values() if len(members) > 1)

    split = len(confirmed) - len(candidates)
    emit_log(f"[INFO] Verification kept {len(confirmed):,} groups ({split:+,} vs candidates)", log_cb)
    return confirmed
