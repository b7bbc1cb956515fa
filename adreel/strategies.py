"""Extraction strategies: which selectors to try for which storefront.

A strategy is data, not code: a URL predicate plus ordered selector lists
per field. All strategies share one in-page script (EXTRACT_JS) that walks
the lists and returns the first non-empty value per field.

Selectors may end in "@attr" to read an attribute instead of textContent,
e.g. 'meta[name="description"]@content'.

Usage:
    from adreel.strategies import default_registry

    strategy = default_registry().select("https://shop.myshopify.com/products/x")
    raw = await page.evaluate(EXTRACT_JS, strategy.rules())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse


HostPredicate = Callable[[str, str], bool]


@dataclass(frozen=True)
class ExtractionStrategy:
    name: str
    matches: HostPredicate
    title: Tuple[str, ...]
    description: Tuple[str, ...] = ()
    price: Tuple[str, ...] = ()
    image_selector: str = "img"
    image_hints: Tuple[str, ...] = ()  # keep only srcs containing one of these
    clean_image_urls: bool = False  # strip ?query and _WxH size suffix
    feature_selectors: Tuple[str, ...] = ()
    feature_min_len: int = 0
    max_images: int = 5
    max_features: int = 5

    def rules(self) -> Dict[str, Any]:
        """Argument object for EXTRACT_JS."""
        return {
            "title": list(self.title),
            "description": list(self.description),
            "price": list(self.price),
            "imageSelector": self.image_selector,
            "imageHints": list(self.image_hints),
            "cleanImages": self.clean_image_urls,
            "featureSelectors": list(self.feature_selectors),
            "featureMinLen": self.feature_min_len,
            "maxImages": self.max_images,
            "maxFeatures": self.max_features,
        }


# ---------------------------------------------------------------------------
# In-page extraction script
# ---------------------------------------------------------------------------

EXTRACT_JS = """(rules) => {
    const read = (sel) => {
        let attr = null;
        const at = sel.lastIndexOf('@');
        if (at > 0) { attr = sel.slice(at + 1); sel = sel.slice(0, at); }
        const el = document.querySelector(sel);
        if (!el) return '';
        const v = attr ? el.getAttribute(attr) : el.textContent;
        return (v || '').trim();
    };
    const first = (sels) => {
        for (const s of sels) {
            const v = read(s);
            if (v) return v;
        }
        return '';
    };

    const images = [];
    document.querySelectorAll(rules.imageSelector).forEach(img => {
        let src = img.src || (img.dataset ? img.dataset.src : '') || '';
        if (!src || !src.startsWith('http')) return;
        if (rules.imageHints.length && !rules.imageHints.some(h => src.includes(h))) return;
        if (rules.cleanImages) {
            src = src.split('?')[0].replace(/_\\d+x\\d+(?=\\.[^.]*$)/, '');
        }
        if (!images.includes(src) && images.length < rules.maxImages) images.push(src);
    });

    const features = [];
    for (const sel of rules.featureSelectors) {
        document.querySelectorAll(sel).forEach(el => {
            const t = (el.textContent || '').trim();
            if (t && t.length > rules.featureMinLen && !features.includes(t)
                && features.length < rules.maxFeatures) features.push(t);
        });
    }

    return {
        title: first(rules.title),
        description: first(rules.description),
        price: first(rules.price),
        images,
        features,
        url: window.location.href,
    };
}"""

BLOCK_CHECK_JS = """() => {
    const body = (document.body && document.body.innerText) || '';
    return body.includes('Type the characters you see')
        || body.includes('Enter the characters you see')
        || body.includes('not a robot')
        || !!document.querySelector('form[action*="validateCaptcha"]')
        || !!document.querySelector('iframe[src*="captcha"]');
}"""


# ---------------------------------------------------------------------------
# Built-in strategies
# ---------------------------------------------------------------------------

def _is_shopify(host: str, path: str) -> bool:
    return "shopify" in host or host.endswith(".myshopify.com")


def _is_amazon(host: str, path: str) -> bool:
    return "amazon" in host


def _any_url(host: str, path: str) -> bool:
    return True


SHOPIFY = ExtractionStrategy(
    name="shopify",
    matches=_is_shopify,
    title=("h1", '[data-testid="product-title"]', ".product-title", ".product__title"),
    description=(".product-description", ".product__description",
                 '[data-testid="product-description"]', ".rte"),
    price=(".price", ".product-price", '[data-testid="price"]', ".money"),
    image_hints=("product", "cdn.shopify"),
    clean_image_urls=True,
    feature_selectors=(".product-features li", ".product-benefits li",
                       ".product-highlights li", ".features li", ".benefits li"),
)

AMAZON = ExtractionStrategy(
    name="amazon",
    matches=_is_amazon,
    title=("#productTitle",),
    description=("#feature-bullets ul", "#productDescription"),
    price=(".a-price-whole", ".a-offscreen"),
    image_selector="#landingImage, .a-dynamic-image",
    feature_selectors=("#feature-bullets li span",),
    feature_min_len=10,
)

GENERIC = ExtractionStrategy(
    name="generic",
    matches=_any_url,
    title=("h1", ".product-title", ".title"),
    description=(".description", ".product-description", 'meta[name="description"]@content'),
    price=(".price", ".cost", ".amount"),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

@dataclass
class StrategyRegistry:
    """Ordered strategies; the catch-all fallback is always consulted last."""

    fallback: ExtractionStrategy = GENERIC
    strategies: List[ExtractionStrategy] = field(default_factory=list)

    def register(self, strategy: ExtractionStrategy, *, first: bool = False) -> None:
        if first:
            self.strategies.insert(0, strategy)
        else:
            self.strategies.append(strategy)

    def select(self, url: str) -> ExtractionStrategy:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        path = parsed.path or ""
        for strategy in self.strategies:
            if strategy.matches(host, path):
                return strategy
        return self.fallback

    def names(self) -> List[str]:
        return [s.name for s in self.strategies] + [self.fallback.name]


def default_registry(extra: Optional[List[ExtractionStrategy]] = None) -> StrategyRegistry:
    registry = StrategyRegistry()
    registry.register(SHOPIFY)
    registry.register(AMAZON)
    for strategy in extra or []:
        registry.register(strategy)
    return registry
