"""Extraction Engine: product URL -> ProductRecord.

`ProductExtractor.extract()` never raises. A live scrape is attempted with
the strategy selected for the URL; any failure (timeout, navigation error,
robot wall, page without a title) is logged and replaced by a synthetic
record derived from the URL. If synthesis itself breaks, a static minimal
record is returned.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from adreel.browser import BrowserSession, get_shared_session
from adreel.config import AppConfig
from adreel.errors import ExtractionFailure
from adreel.models import ProductRecord
from adreel.strategies import (
    BLOCK_CHECK_JS,
    EXTRACT_JS,
    StrategyRegistry,
    default_registry,
)
from adreel.synthetic import minimal_product, synthesize_from_url

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DESCRIPTION_MAX_LEN = 500
ELLIPSIS = "..."
MAX_IMAGES = 5
MAX_FEATURES = 3

_WS_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Failure classification (for logs)
# ---------------------------------------------------------------------------

class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NAVIGATION = "navigation"
    EMPTY = "empty"
    UNKNOWN = "unknown"


_BLOCKED_PATTERNS = ["captcha", "robot", "access denied", "403", "blocked"]
_NAVIGATION_PATTERNS = [
    "net::err", "name_not_resolved", "connection refused", "connection reset",
    "ssl", "certificate", "navigation", "404", "not found",
]


def classify_extraction_error(error: BaseException) -> FailureKind:
    """Classify a scrape failure by type and message keywords."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(error, ExtractionFailure) and error.code == "EMPTY_PAGE":
        return FailureKind.EMPTY
    text = str(error).lower()
    if "timeout" in text or "timed out" in text:
        return FailureKind.TIMEOUT
    for pat in _BLOCKED_PATTERNS:
        if pat in text:
            return FailureKind.BLOCKED
    for pat in _NAVIGATION_PATTERNS:
        if pat in text:
            return FailureKind.NAVIGATION
    return FailureKind.UNKNOWN


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def _clean(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return _WS_RE.sub(" ", value).strip()


def truncate(text: str, max_len: int = DESCRIPTION_MAX_LEN) -> str:
    return text[:max_len] + ELLIPSIS if len(text) > max_len else text


def _is_absolute_http(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _unique(items: List[str]) -> List[str]:
    seen: set = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def normalize_product(raw: Dict[str, Any], url: str) -> ProductRecord:
    """Turn in-page extraction output into a ProductRecord.

    Raises ExtractionFailure when the page yielded no title.
    """
    title = _clean(raw.get("title"))
    if not title:
        raise ExtractionFailure("page yielded no product title", code="EMPTY_PAGE")

    images = [i.strip() for i in raw.get("images") or [] if isinstance(i, str)]
    images = _unique([i for i in images if _is_absolute_http(i)])[:MAX_IMAGES]
    features = _unique([_clean(f) for f in raw.get("features") or []])[:MAX_FEATURES]

    return ProductRecord(
        title=title,
        description=truncate(_clean(raw.get("description"))),
        price=_clean(raw.get("price")),
        images=tuple(images),
        features=tuple(features),
        source_url=_clean(raw.get("url")) or url,
        is_synthetic=False,
    )


# ---------------------------------------------------------------------------
# ProductExtractor
# ---------------------------------------------------------------------------

class ProductExtractor:
    def __init__(
        self,
        cfg: AppConfig,
        *,
        session: Optional[BrowserSession] = None,
        registry: Optional[StrategyRegistry] = None,
        synthesize: Callable[[str], ProductRecord] = synthesize_from_url,
    ):
        self.cfg = cfg
        self._session = session
        self.registry = registry or default_registry()
        self._synthesize = synthesize

    @property
    def session(self) -> BrowserSession:
        if self._session is None:
            self._session = get_shared_session(self.cfg)
        return self._session

    async def extract(self, url: str, *, timeout_s: Optional[float] = None) -> ProductRecord:
        """Scrape `url`, falling back to synthetic data. Never raises."""
        budget = self.cfg.extract_timeout_s if timeout_s is None else timeout_s
        try:
            product = await asyncio.wait_for(self.scrape(url), timeout=max(budget, 0.001))
            log.info("extracted %r via live scrape", product.title)
            return product
        except Exception as exc:  # noqa: BLE001
            kind = classify_extraction_error(exc)
            log.warning("extraction failed (%s) for %s: %s", kind.value, url, exc or type(exc).__name__)
        return self.synthetic(url)

    async def scrape(self, url: str) -> ProductRecord:
        strategy = self.registry.select(url)
        log.debug("scraping %s with strategy=%s", url, strategy.name)
        async with self.session.page() as page:
            await page.goto(url, wait_until=self.cfg.nav_wait_until, timeout=self.cfg.nav_timeout_ms)
            if await page.evaluate(BLOCK_CHECK_JS):
                raise ExtractionFailure("captcha / robot check page", code="BLOCKED")
            raw = await page.evaluate(EXTRACT_JS, strategy.rules())
        if not isinstance(raw, dict):
            raise ExtractionFailure("extraction script returned no data", code="EMPTY_PAGE")
        return normalize_product(raw, url)

    def synthetic(self, url: str) -> ProductRecord:
        try:
            product = self._synthesize(url)
            log.info("using synthetic product %r for %s", product.title, url)
            return product
        except Exception as exc:  # noqa: BLE001
            log.error("synthetic product generation failed for %s: %s", url, exc)
            return minimal_product(url)
