"""Command registration for the spotcheck CLI."""
from __future__ import annotations

from typing import Iterable

from . import fstype, scan

COMMAND_MODULES: Iterable = (scan, fstype)

__all__ = ["COMMAND_MODULES"]
