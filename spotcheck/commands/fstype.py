"""CLI command for showing which filesystem a path lives on."""
from __future__ import annotations

import argparse
from argparse import _SubParsersAction
from pathlib import Path
from typing import Optional, Sequence

from ..config import load_config
from ..fstype import BlacklistMatcher, FsTypeError, FsTypeResolver
from ..util import emit_log


def _configure_parser(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Optional YAML configuration file")
    parser.add_argument("paths", nargs="+", help="Paths to look up")


def add_parser(subparsers: _SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "fstype",
        help="Show filesystem type and blacklist status for paths",
        description="Print the filesystem type of each path and whether scan would skip it.",
    )
    _configure_parser(parser)
    parser.set_defaults(handler=run_from_args)
    return parser


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog or "spotcheck fstype", description="Show filesystem types for paths")
    _configure_parser(parser)
    return parser


def run_from_args(args: argparse.Namespace) -> int:
    cfg = load_config(Path(args.config) if args.config else None)
    resolver = FsTypeResolver()
    blacklist = BlacklistMatcher(cfg.ingest.blacklist_filesystems)
    rc = 0
    for path in args.paths:
        try:
            fstype = resolver.fs_type(path)
        except FsTypeError as e:
            emit_log(f"[WARN] {e}")
            rc = 1
            continue
        status = "blacklisted" if blacklist.is_blacklisted(fstype) else "ok"
        print(f"{path}\t{fstype}\t{status}")
    return rc


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return run_from_args(args)


__all__ = ["add_parser", "build_parser", "run_cli", "run_from_args"]
