"""Runtime configuration for adreel.

Values come from ADREEL_* environment variables, optionally seeded from a
.env file (existing variables win). Everything has a working default so the
CLI and server start with no setup beyond ffmpeg and a Playwright browser.

Usage:
    from adreel.config import load_config

    cfg = load_config()
    print(cfg.output_dir, cfg.pipeline_timeout_s)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


# ---------------------------------------------------------------------------
# Env helpers
# ---------------------------------------------------------------------------

def load_env_file(path: str) -> None:
    """Load KEY=VALUE pairs from a file into os.environ (does not overwrite existing)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                raw = line.strip()
                if not raw or raw.startswith("#") or "=" not in raw:
                    continue
                key, value = raw.split("=", 1)
                key = key.strip()
                if key and key not in os.environ:
                    v = value.strip()
                    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                        v = v[1:-1]
                    os.environ[key] = v
    except OSError:
        return


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except (ValueError, TypeError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in ("false", "0", "no", "off")


# ---------------------------------------------------------------------------
# AppConfig
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AppConfig:
    output_dir: Path = field(default_factory=lambda: Path("videos").resolve())
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "adreel")
    log_dir: Optional[Path] = None
    log_level: str = "INFO"

    # Stage budgets (seconds)
    extract_timeout_s: float = 30.0
    script_timeout_s: float = 60.0
    render_timeout_s: float = 300.0
    pipeline_timeout_s: float = 600.0
    ffmpeg_command_timeout_s: float = 120.0

    # Browser
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    nav_timeout_ms: int = 30000
    nav_wait_until: str = "domcontentloaded"
    max_pages: int = 4

    # Render
    render_workers: int = field(default_factory=lambda: os.cpu_count() or 2)
    width: int = 1080
    height: int = 1920
    fps: int = 30
    font_file: str = ""

    # HTTP
    host: str = "127.0.0.1"
    port: int = 3001

    def ensure_dirs(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)


def load_config(env_file: str = ".env") -> AppConfig:
    """Build AppConfig from environment (after loading env_file if present)."""
    if env_file:
        load_env_file(env_file)

    log_dir = os.environ.get("ADREEL_LOG_DIR", "").strip()
    return AppConfig(
        output_dir=Path(_env_str("ADREEL_OUTPUT_DIR", "videos")).expanduser().resolve(),
        temp_dir=Path(_env_str("ADREEL_TEMP_DIR", str(Path(tempfile.gettempdir()) / "adreel"))).expanduser(),
        log_dir=Path(log_dir).expanduser() if log_dir else None,
        log_level=_env_str("ADREEL_LOG_LEVEL", "INFO").upper(),
        extract_timeout_s=_env_float("ADREEL_EXTRACT_TIMEOUT", 30.0),
        script_timeout_s=_env_float("ADREEL_SCRIPT_TIMEOUT", 60.0),
        render_timeout_s=_env_float("ADREEL_RENDER_TIMEOUT", 300.0),
        pipeline_timeout_s=_env_float("ADREEL_PIPELINE_TIMEOUT", 600.0),
        ffmpeg_command_timeout_s=_env_float("ADREEL_FFMPEG_TIMEOUT", 120.0),
        headless=_env_bool("ADREEL_HEADLESS", True),
        user_agent=_env_str("ADREEL_USER_AGENT", DEFAULT_USER_AGENT),
        nav_timeout_ms=_env_int("ADREEL_NAV_TIMEOUT_MS", 30000),
        nav_wait_until=_env_str("ADREEL_NAV_WAIT_UNTIL", "domcontentloaded"),
        max_pages=max(1, _env_int("ADREEL_MAX_PAGES", 4)),
        render_workers=max(1, _env_int("ADREEL_RENDER_WORKERS", os.cpu_count() or 2)),
        width=_env_int("ADREEL_WIDTH", 1080),
        height=_env_int("ADREEL_HEIGHT", 1920),
        fps=_env_int("ADREEL_FPS", 30),
        font_file=_env_str("ADREEL_FONT_FILE", ""),
        host=_env_str("ADREEL_HOST", "127.0.0.1"),
        port=_env_int("ADREEL_PORT", 3001),
    )
