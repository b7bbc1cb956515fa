"""Shared I/O utilities for the adreel package."""

from __future__ import annotations

import os
import secrets
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path


def publish_file(src: Path, dest: Path) -> Path:
    """Move a finished file into place so readers never see a partial copy.

    Uses os.replace when src and dest share a filesystem, otherwise copies
    to a hidden sibling of dest first and renames that.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(str(src), str(dest))
    except OSError:
        tmp = dest.with_name("." + dest.name + ".part")
        shutil.copyfile(str(src), str(tmp))
        os.replace(str(tmp), str(dest))
        src.unlink(missing_ok=True)
    return dest


def utc_now_iso() -> str:
    """Return current UTC time as ISO 8601 string (YYYY-MM-DDTHH:MM:SSZ)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def new_artifact_id(prefix: str = "video") -> str:
    """Millisecond timestamp plus random suffix, e.g. video_1718000000000_3fa2c1."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"
