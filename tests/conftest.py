from __future__ import annotations

import os
from pathlib import Path

import pytest

from spotcheck.fstype import FsTypeResolver


def write_file(p: Path, data: bytes | str, mtime: float | None = None) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    mode = "wb" if isinstance(data, (bytes, bytearray)) else "w"
    with open(p, mode) as f:
        f.write(data)
    if mtime is not None:
        os.utime(p, (mtime, mtime))
    return p


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    root = tmp_path / "root"
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def ext4_resolver() -> FsTypeResolver:
    # Pin the mount table so tests don't depend on where tmp_path lives
    return FsTypeResolver(mounts=[("/", "ext4")])


@pytest.fixture
def no_blacklist_config(tmp_path: Path) -> Path:
    cfg = tmp_path / "spotcheck.yaml"
    cfg.write_text("ingest:\n  blacklist_filesystems: []\n", encoding="utf-8")
    return cfg
