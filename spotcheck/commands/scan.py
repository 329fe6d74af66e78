"""CLI command for finding probable duplicates among paths read from stdin."""
from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from argparse import _SubParsersAction
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..analyser import DuplicateFileAnalyser
from ..config import AnalyserConfig, load_config
from ..errors import HashError
from ..ingest import ingest_paths
from ..stats import ScanStats
from ..util import emit_log
from ..verify import verify_groups

DESCRIPTION = """\
Finds likely duplicate files by comparing file sizes and content hashes.
Reads file paths from stdin (one per line) and outputs groups of
(probably) duplicate files to stdout, separated by blank lines.
For speed, it will only sample larger files, and *will not* compare
the entire file, so it could output some false positives.
Statistics and errors go to stderr.
"""

EPILOG = """\
behavior:
  - skips directories, symlinks, and special files
  - ignores zero-length files
  - filters out blacklisted filesystems (tmpfs, sysfs, efivarfs, devfs, tracefs by default)
  - groups files by size first, then by content hash
  - only outputs groups with 2+ duplicate files

examples:
  find . -type f | spotcheck scan
  find /home -type f | spotcheck scan -j 16
"""


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Optional YAML configuration file")
    parser.add_argument("-j", "--jobs", type=int, help="Number of concurrent hash operations (default: 8)")
    parser.add_argument("--threshold", type=int, help="Files at or above this many bytes get a sampled hash")
    parser.add_argument("--skip-blocks", type=int, help="Blocks skipped between samples for large files")
    parser.add_argument("--verify", action="store_true", help="Confirm candidate groups with a full BLAKE3 pass")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "scan",
        help="Find probable duplicate files from paths on stdin",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog or "spotcheck scan",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _configure_parser(parser)
    return parser


def output_group(group: Sequence[str], out: BinaryIO) -> None:
    # paths go out as the bytes they came in as, surrogate escapes included
    for path in group:
        out.write(os.fsencode(path) + b"\n")
    out.write(b"\n")


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config) if args.config else None)
    overrides: Dict[str, int] = {}
    if args.jobs is not None:
        overrides["workers"] = args.jobs
    if args.threshold is not None:
        overrides["size_threshold"] = args.threshold
    if args.skip_blocks is not None:
        overrides["skip_blocks"] = args.skip_blocks
    try:
        cfg.analyser = AnalyserConfig(**{**cfg.analyser.model_dump(), **overrides})
    except ValidationError as e:
        raise SystemExit(f"invalid analyser options: {e}")
    if args.verify:
        cfg.verify.enabled = True

    stats = ScanStats()
    analyser = DuplicateFileAnalyser(cfg.analyser)

    def on_error(err: HashError) -> None:
        print(f"error analysing: {err}", file=sys.stderr)
        stats.increment("reading files")

    analyser.consume_errors(on_error)

    interrupted = threading.Event()

    def _handle_sigint(signum, frame):  # noqa: ARG001
        interrupted.set()
        analyser.cancel()

    previous = None
    try:
        previous = signal.signal(signal.SIGINT, _handle_sigint)
    except ValueError:
        # not the main thread
        pass

    try:
        stdin = getattr(sys.stdin, "buffer", sys.stdin)
        submitted = ingest_paths(stdin, analyser, stats, cfg.ingest, cancelled=interrupted)
    finally:
        analyser.finish()
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    groups: List[List[str]] = [g for g in analyser.groups() if len(g) > 1]
    if cfg.verify.enabled:
        groups = verify_groups(groups, cfg.verify.max_workers, cfg.verify.chunk_bytes)

    sys.stdout.flush()
    out = sys.stdout.buffer
    for group in groups:
        output_group(group, out)
    out.flush()

    sys.stderr.write(stats.dump())
    counters = analyser.stats()
    emit_log(
        f"[DONE] {analyser.dump()} | submitted={submitted:,} hashed={counters['hashed']:,} "
        f"errors={counters['errors']:,} cancelled={counters['cancelled']:,} | duplicate groups={len(groups):,}"
    )
    return 0


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "output_group", "run_cli", "run_from_args"]
