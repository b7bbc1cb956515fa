"""Shared Playwright browser session for product extraction.

One Chromium instance serves every extraction in the process. It is
launched lazily on first use, reused afterwards, and closed explicitly on
shutdown (server lifespan or CLI exit).

Access rules:
- start/close are serialized by an asyncio.Lock
- concurrent pages are bounded by an asyncio.Semaphore
- pages are only handed out through `page()`, which always closes them

Dependencies: playwright (pip install playwright && playwright install chromium)

Usage:
    from adreel.browser import get_shared_session, close_shared_session

    session = get_shared_session(cfg)
    async with session.page() as page:
        await page.goto(url)
    ...
    await close_shared_session()
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from adreel.config import AppConfig

log = logging.getLogger(__name__)

LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--ignore-certificate-errors",
)
DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
CLOSE_TIMEOUT_S = 3.0


class BrowserSession:
    """Lazily started Chromium with bounded, scoped page access."""

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str = "",
        max_pages: int = 4,
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.max_pages = max(1, max_pages)

        self._lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(self.max_pages)

        # Playwright objects (set in start)
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "BrowserSession":
        return cls(headless=cfg.headless, user_agent=cfg.user_agent, max_pages=cfg.max_pages)

    @property
    def started(self) -> bool:
        return self._context is not None

    async def start(self) -> None:
        async with self._lock:
            if self._context is not None:
                return
            from playwright.async_api import async_playwright

            log.info("launching headless browser (max_pages=%d)", self.max_pages)
            self._playwright = await async_playwright().start()
            try:
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless, args=list(LAUNCH_ARGS),
                )
                ctx_opts: dict[str, Any] = {
                    "viewport": DEFAULT_VIEWPORT,
                    "ignore_https_errors": True,
                }
                if self.user_agent:
                    ctx_opts["user_agent"] = self.user_agent
                self._context = await self._browser.new_context(**ctx_opts)
            except Exception:
                await self._teardown()
                raise

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Any]:
        """Acquire a fresh page; it is closed on every exit path."""
        async with self._slots:
            await self.start()
            page = await self._context.new_page()
            try:
                yield page
            finally:
                try:
                    await asyncio.wait_for(page.close(), timeout=CLOSE_TIMEOUT_S)
                except Exception as exc:  # noqa: BLE001
                    log.debug("page close failed: %s", exc)

    async def close(self) -> None:
        """Close context -> browser -> playwright. Safe to call twice."""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        for name in ("_context", "_browser"):
            obj = getattr(self, name)
            setattr(self, name, None)
            if obj is None:
                continue
            try:
                await asyncio.wait_for(obj.close(), timeout=CLOSE_TIMEOUT_S)
            except Exception as exc:  # noqa: BLE001
                log.debug("%s close failed: %s", name.strip("_"), exc)
        if self._playwright is not None:
            pw, self._playwright = self._playwright, None
            try:
                await asyncio.wait_for(pw.stop(), timeout=CLOSE_TIMEOUT_S)
            except Exception as exc:  # noqa: BLE001
                log.debug("playwright stop failed: %s", exc)

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Process-wide session
# ---------------------------------------------------------------------------

_shared: Optional[BrowserSession] = None


def get_shared_session(cfg: AppConfig) -> BrowserSession:
    """Return the process-wide session, creating it (unstarted) if needed."""
    global _shared
    if _shared is None:
        _shared = BrowserSession.from_config(cfg)
    return _shared


async def close_shared_session() -> None:
    global _shared
    session, _shared = _shared, None
    if session is not None:
        await session.close()
