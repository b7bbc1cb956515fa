"""Deterministic ProductRecord synthesis from a bare URL.

Used when live extraction fails (blocked page, timeout, no title). The goal
is a plausible demo product rather than a generic placeholder: known
marketplaces and brands map to canned records, everything else gets a title
built from the most product-like path segment.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from adreel.models import ProductRecord


# ---------------------------------------------------------------------------
# Canned data
# ---------------------------------------------------------------------------

DEFAULT_TITLE = "Premium Product"
DEFAULT_DESCRIPTION = "High-quality product with excellent features."
DEFAULT_PRICE = "$99"
DEFAULT_FEATURES = ("Premium quality", "Great value", "Customer favorite")

DEMO_IMAGES = (
    "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=800&h=800&fit=crop",
    "https://images.unsplash.com/photo-1526170375885-4d8ecf77b99f?w=800&h=800&fit=crop",
    "https://images.unsplash.com/photo-1542291026-7eec264c27ff?w=800&h=800&fit=crop",
)

# (keywords, title, description, price, features); matched against the full URL
AMAZON_PRODUCTS: List[Tuple[Tuple[str, ...], str, str, str, Tuple[str, ...]]] = [
    (
        ("refrigerator", "fridge"),
        "LG Inverter Refrigerator",
        "Energy-efficient double door refrigerator with advanced inverter technology. "
        "Features frost-free operation, optimal cooling, and spacious storage compartments.",
        "$899",
        ("Inverter technology", "Frost-free operation", "Energy efficient", "Large capacity"),
    ),
    (
        ("phone", "mobile"),
        "Premium Smartphone",
        "Latest smartphone with advanced features, high-quality camera, and long-lasting battery life.",
        "$699",
        ("High-resolution camera", "Fast processor", "Long battery life"),
    ),
    (
        ("laptop", "computer"),
        "Professional Laptop",
        "High-performance laptop designed for professionals and power users.",
        "$1299",
        ("Fast processor", "Ample storage", "Professional grade"),
    ),
]

# Keyword tables for generic paths, matched against the derived title
DEMO_DESCRIPTIONS: Dict[str, str] = {
    "leggings": "Premium seamless leggings designed for ultimate comfort and performance. "
                "Perfect for workouts, yoga, or everyday wear.",
    "shoes": "Sustainable and comfortable shoes made from natural materials. "
             "Experience all-day comfort with eco-friendly design.",
    "coffee": "Expertly roasted coffee beans sourced from the finest farms. "
              "Rich, bold flavor that awakens your senses.",
    "activewear": "High-performance activewear designed for athletes and fitness enthusiasts. "
                  "Move with confidence and style.",
    "top": "Premium athletic top designed for maximum comfort and breathability during intense workouts.",
}

DEMO_FEATURES: Dict[str, Tuple[str, ...]] = {
    "leggings": ("Seamless construction", "Moisture-wicking fabric", "High waistband"),
    "shoes": ("Sustainable materials", "All-day comfort", "Machine washable"),
    "coffee": ("Single origin beans", "Medium roast", "Ethically sourced"),
    "activewear": ("Breathable fabric", "Flexible fit", "Sweat-resistant"),
    "top": ("Moisture-wicking", "Four-way stretch", "Lightweight"),
}

_SKIP_SEGMENT_RE = re.compile(r"^(products?|items?|p|dp|B[0-9A-Z]{9})$", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"[^a-zA-Z0-9\s]")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def title_from_segment(segment: str, max_words: int) -> str:
    """'vital-seamless_leggings-2.0' -> 'Vital Seamless Leggings'."""
    words = _NON_WORD_RE.sub("", re.sub(r"[-_]", " ", segment)).split()
    words = [w for w in words if len(w) > 2][:max_words]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _amazon_title(path: str) -> str:
    for part in path.split("/"):
        if len(part) > 10 and not part.startswith("dp") and not part.startswith("B0"):
            return title_from_segment(part, 4)
    return ""


def _generic_title(path: str) -> str:
    parts = [p for p in path.split("/") if len(p) > 3]
    if not parts:
        return ""
    best = next((p for p in parts if not _SKIP_SEGMENT_RE.match(p)), parts[-1])
    return title_from_segment(best, 3)


def _lookup(table: Dict[str, object], title: str) -> Optional[object]:
    lowered = title.lower()
    for key, value in table.items():
        if key in lowered:
            return value
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def synthesize_from_url(url: str) -> ProductRecord:
    """Build a synthetic ProductRecord from the URL alone. Pure and deterministic."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = parsed.path or ""
    url_lower = url.lower()

    title = DEFAULT_TITLE
    description = DEFAULT_DESCRIPTION
    price = DEFAULT_PRICE
    features: Tuple[str, ...] = DEFAULT_FEATURES

    if "amazon" in host:
        title = _amazon_title(path) or title
        for keywords, name, desc, cost, feats in AMAZON_PRODUCTS:
            if any(k in url_lower for k in keywords):
                title, description, price, features = name, desc, cost, feats
                break
    elif "gymshark" in host:
        if "leggings" in path.lower():
            title = "Vital Seamless Leggings"
            description = ("Premium seamless leggings designed for ultimate comfort "
                           "and performance during workouts.")
            price = "$65"
            features = ("Seamless design", "Moisture-wicking", "Squat-proof", "Comfortable fit")
        else:
            title = "Premium Activewear"
            description = ("High-performance athletic wear designed for serious athletes "
                           "and fitness enthusiasts.")
            price = "$55"
            features = ("Performance fabric", "Athletic fit", "Durable construction")
    elif "allbirds" in host:
        title = "Tree Runner Shoes"
        description = ("Sustainable and comfortable shoes made from natural materials. "
                       "Perfect for everyday wear with eco-friendly design.")
        price = "$98"
        features = ("Sustainable materials", "All-day comfort", "Machine washable", "Eco-friendly")
    elif "coffee" in url_lower:
        title = "Premium Coffee Blend"
        description = ("Expertly roasted coffee beans sourced from the finest farms. "
                       "Rich, bold flavor that awakens your senses.")
        price = "$24"
        features = ("Single origin", "Expert roasted", "Rich flavor", "Premium quality")
    else:
        derived = _generic_title(path)
        if derived:
            title = derived
            description = _lookup(DEMO_DESCRIPTIONS, derived) or (
                f"Premium {derived.lower()} crafted with attention to detail and quality. "
                "Experience the perfect blend of style, comfort, and performance."
            )
            features = _lookup(DEMO_FEATURES, derived) or features

    return ProductRecord(
        title=title,
        description=description,
        price=price,
        images=DEMO_IMAGES,
        features=tuple(features)[:3],
        source_url=url,
        is_synthetic=True,
    )


def minimal_product(url: str = "") -> ProductRecord:
    """Last-resort record when even URL synthesis fails."""
    return ProductRecord(
        title=DEFAULT_TITLE,
        description=("A high-quality product designed to meet your needs with exceptional "
                     "craftsmanship and attention to detail."),
        price="$79",
        images=(),
        features=("Premium quality", "Expert craftsmanship", "Customer satisfaction"),
        source_url=url,
        is_synthetic=True,
    )
