from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
import yaml

BLOCK_SIZE = 8192

DEFAULT_BLACKLIST = ["tmpfs", "sysfs", "efivarfs", "devfs", "tracefs"]

class AnalyserConfig(BaseModel):
    workers: int = Field(default=8, ge=1)
    size_threshold: int = Field(default=8 * BLOCK_SIZE, gt=0)  # 64 KB
    skip_blocks: int = Field(default=1000, ge=1)  # blocks skipped between samples

class IngestConfig(BaseModel):
    blacklist_filesystems: List[str] = Field(default_factory=lambda: list(DEFAULT_BLACKLIST))
    dedupe_paths: bool = True

class VerifyConfig(BaseModel):
    enabled: bool = False
    max_workers: int = Field(default=4, ge=1)
    chunk_bytes: int = Field(default=2 * 1024 * 1024, gt=0)  # 2 MB streaming chunks

class SpotCheckConfig(BaseModel):
    analyser: AnalyserConfig = Field(default_factory=AnalyserConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    verify: VerifyConfig = Field(default_factory=VerifyConfig)

def load_config(path: Optional[Path] = None) -> SpotCheckConfig:
    if path is None:
        return SpotCheckConfig()
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return SpotCheckConfig(**(data or {}))
