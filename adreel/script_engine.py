"""Script Synthesis Engine: ProductRecord -> ScriptRecord.

Rule-based, no model calls. A product is profiled (category, price tier,
benefit tags, urgency) from fixed keyword tables, then laid out as four
contiguous scenes:

    hook              0-4s
    problem-solution  4-12s
    product-showcase  12-18s
    call-to-action    18-21s

Hook and CTA lines are picked at random from urgency-keyed pools for
variety; pass a seeded random.Random to make output reproducible.

Alternative scripts come from a separate generator: it reads surface
signals from the previous script (urgency words, energetic emoji, focus
words), inverts all three, and writes new scenes from its own pools.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from adreel.errors import ScriptValidationFailure
from adreel.io import utc_now_iso
from adreel.models import ProductRecord, Scene, SceneType, ScriptRecord, scenes_from_specs

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Classification tables
# ---------------------------------------------------------------------------

CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("fashion", ("clothing", "shirt", "dress", "shoes", "fashion", "wear", "style", "outfit")),
    ("tech", ("phone", "laptop", "computer", "device", "gadget", "electronic", "smart", "digital")),
    ("beauty", ("beauty", "skincare", "makeup", "cosmetic", "cream", "serum", "face", "skin")),
    ("fitness", ("fitness", "workout", "gym", "exercise", "health", "protein", "muscle", "training")),
    ("home", ("home", "kitchen", "furniture", "decor", "house", "room", "living", "dining")),
    ("food", ("food", "snack", "drink", "coffee", "tea", "organic", "nutrition", "flavor")),
    ("book", ("book", "read", "author", "story", "guide", "learn", "education", "knowledge")),
    ("game", ("game", "play", "gaming", "console", "entertainment", "fun", "board")),
]
DEFAULT_CATEGORY = "general"

BENEFIT_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("save time", ("quick", "fast", "instant", "immediate", "efficient", "time-saving")),
    ("save money", ("affordable", "cheap", "budget", "value", "deal", "discount")),
    ("premium quality", ("premium", "quality", "high-end", "professional", "luxury", "best")),
    ("easy to use", ("easy", "simple", "user-friendly", "intuitive", "effortless")),
    ("durable", ("durable", "lasting", "strong", "robust", "reliable", "long-lasting")),
    ("innovative", ("innovative", "new", "advanced", "cutting-edge", "revolutionary")),
    ("comfortable", ("comfortable", "soft", "cozy", "ergonomic", "smooth")),
    ("versatile", ("versatile", "flexible", "multi-purpose", "adaptable", "various")),
]
DEFAULT_BENEFITS = ("amazing quality", "great value")
MAX_BENEFITS = 3

# Price tier thresholds (upper bounds, exclusive)
PRICE_TIERS: List[Tuple[float, str]] = [(25, "budget"), (100, "affordable"), (500, "premium")]
TOP_PRICE_TIER = "luxury"
UNKNOWN_PRICE_TIER = "unknown"

CATEGORY_URGENCY = {"fashion": 2, "tech": 1, "beauty": 2, "fitness": 1}
TIER_URGENCY = {"budget": 2, "affordable": 1, "premium": 0, "luxury": 0}
NEUTRAL_URGENCY = 1

_PRICE_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


# ---------------------------------------------------------------------------
# Scene layout and copy
# ---------------------------------------------------------------------------

# (type, duration, visual direction, default text animation)
SCENE_PLAN: List[Tuple[str, int, str, str]] = [
    (SceneType.HOOK.value, 4, "Dynamic product hero shot with zoom effect", "zoom-in"),
    (SceneType.PROBLEM_SOLUTION.value, 8, "Split screen showing problem vs solution with product", "slide-up"),
    (SceneType.PRODUCT_SHOWCASE.value, 6, "Close-up product shots highlighting key features", "fade-in"),
    (SceneType.CALL_TO_ACTION.value, 3, "Strong CTA overlay with product logo and price", "fade-in"),
]

HOOKS: Dict[str, Tuple[str, ...]] = {
    "high": (
        "🔥 Discover {title}!",
        "⚡ Introducing {title}",
        "🚨 Don't Miss {title}",
        "✨ Finally! {title}",
        "🎯 The {title} You Need",
    ),
    "medium": (
        "✨ Meet {title}",
        "🌟 Presenting {title}",
        "💎 Experience {title}",
        "🎉 Discover {title}",
        "🔥 Try {title}",
    ),
    "low": (
        "Introducing {title}",
        "Meet the new {title}",
        "Discover {title}",
        "Experience {title}",
        "The perfect {title}",
    ),
}

PROBLEM_SOLUTION: Dict[str, str] = {
    "fashion": "Transform your style with {benefit}. Look amazing every day!",
    "tech": "Upgrade your digital life with {benefit}. Technology that works for you.",
    "beauty": "Reveal your natural beauty with {benefit}. Feel confident and radiant.",
    "fitness": "Achieve your fitness goals with {benefit}. Get stronger, feel better.",
    "home": "Transform your space with {benefit}. Create the home you love.",
    "food": "Taste the difference with {benefit}. Pure quality you can trust.",
    "general": "Experience the power of {benefit}. Life made better.",
}

SHOWCASES: Dict[str, str] = {
    "luxury": "{title} delivers {benefits}. Uncompromising excellence.",
    "premium": "{title} combines {benefits}. Premium quality, exceptional value.",
    "affordable": "{title} offers {benefits}. Great quality, amazing price.",
    "budget": "{title} provides {benefits}. Quality that doesn't break the bank.",
}

# (text when a price is known, text when it is not)
CTAS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "high": (
        ("Get Yours Now! 💳", "Get Yours Now! 🛒"),
        ("Order Today! {price}", "Order Today! 📱"),
        ("Don't Wait - Buy Now! ⚡", "Don't Wait - Buy Now! 🔥"),
        ("Limited Time! {price} 🚨", "Limited Time! Order Now 🚨"),
    ),
    "medium": (
        ("Shop Now! {price}", "Shop Now! 🛍️"),
        ("Get Yours Today 💰", "Get Yours Today 📦"),
        ("Order Now {price}", "Order Now ✨"),
        ("Buy Today! 💳", "Buy Today! 🎯"),
    ),
    "low": (
        ("Learn More {price}", "Learn More 📖"),
        ("Shop Collection 🛍️", "Shop Collection ✨"),
        ("Discover More {price}", "Discover More 🔍"),
        ("Explore Now 💎", "Explore Now 🌟"),
    ),
}

VOICE_TONES = {
    "high": "Energetic and urgent tone with clear pronunciation. Build excitement and urgency.",
    "medium": "Confident and persuasive tone. Emphasize benefits and value proposition.",
    "low": "Professional and trustworthy tone. Focus on quality and reliability.",
}

VOICE_NOTES = {
    "fashion": "Stylish and trendy delivery. Appeal to fashion-conscious audience.",
    "tech": "Clear and precise delivery. Highlight innovation and functionality.",
    "beauty": "Warm and aspirational tone. Focus on transformation and confidence.",
    "fitness": "Motivational and energetic delivery. Inspire action and achievement.",
}

MUSIC = {
    "fashion": "upbeat",
    "tech": "modern",
    "beauty": "inspirational",
    "fitness": "energetic",
    "home": "warm",
    "food": "comfortable",
    "general": "upbeat",
}

GENERATOR_PRIMARY = "local-intelligent-template"
GENERATOR_ALTERNATIVE = "local-alternative-template"
GENERATOR_FALLBACK = "local-fallback-template"


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProductProfile:
    category: str
    price_tier: str
    benefits: Tuple[str, ...]
    urgency: str


def classify_category(title: str, description: str = "") -> str:
    text = f"{title} {description}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return DEFAULT_CATEGORY


def parse_price(price: str) -> Optional[float]:
    """'$1,299.00' -> 1299.0; None when no number is present."""
    cleaned = re.sub(r"[^0-9.]", "", price or "")
    m = _PRICE_NUMBER_RE.match(cleaned)
    if not m:
        return None
    try:
        return float(m.group(0))
    except ValueError:
        return None


def classify_price_tier(price: str) -> str:
    value = parse_price(price)
    if value is None:
        return UNKNOWN_PRICE_TIER
    for upper, tier in PRICE_TIERS:
        if value < upper:
            return tier
    return TOP_PRICE_TIER


def extract_benefits(description: str, features: Sequence[str] = ()) -> Tuple[str, ...]:
    text = f"{description} {' '.join(features)}".lower()
    found = [b for b, keywords in BENEFIT_KEYWORDS if any(k in text for k in keywords)]
    return tuple(found[:MAX_BENEFITS]) if found else DEFAULT_BENEFITS


def compute_urgency(category: str, price_tier: str) -> str:
    score = CATEGORY_URGENCY.get(category, NEUTRAL_URGENCY) + TIER_URGENCY.get(price_tier, NEUTRAL_URGENCY)
    if score >= 3:
        return "high"
    if score >= 2:
        return "medium"
    return "low"


def profile_product(product: ProductRecord) -> ProductProfile:
    category = classify_category(product.title, product.description)
    tier = classify_price_tier(product.price)
    return ProductProfile(
        category=category,
        price_tier=tier,
        benefits=extract_benefits(product.description, product.features),
        urgency=compute_urgency(category, tier),
    )


def voiceover_notes(profile: ProductProfile) -> str:
    note = VOICE_NOTES.get(profile.category)
    return f"{VOICE_TONES[profile.urgency]} {note or ''}".strip()


def background_music(profile: ProductProfile) -> str:
    return MUSIC.get(profile.category, "upbeat")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_script(script: ScriptRecord) -> None:
    """Raise ScriptValidationFailure unless the script is renderable.

    Requires at least one scene, non-empty text, integer timings, scenes
    laid end to end from 0, and totalDuration equal to the sum.
    """
    if not script.scenes:
        raise ScriptValidationFailure("script has no scenes")
    cursor = 0
    for i, scene in enumerate(script.scenes):
        if not isinstance(scene.text, str) or not scene.text.strip():
            raise ScriptValidationFailure(f"scene {i + 1} has empty text")
        if not _is_int(scene.start_time) or not _is_int(scene.duration):
            raise ScriptValidationFailure(f"scene {i + 1} timings must be integers")
        if scene.duration <= 0:
            raise ScriptValidationFailure(f"scene {i + 1} duration must be positive")
        if scene.start_time != cursor:
            raise ScriptValidationFailure(
                f"scene {i + 1} starts at {scene.start_time}s, expected {cursor}s"
            )
        cursor += scene.duration
    if script.total_duration != cursor:
        raise ScriptValidationFailure(
            f"totalDuration {script.total_duration}s != sum of scenes {cursor}s"
        )


def is_valid_script(script: ScriptRecord) -> bool:
    try:
        validate_script(script)
    except ScriptValidationFailure:
        return False
    return True


# ---------------------------------------------------------------------------
# Alternative approach signals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Approach:
    urgency: str  # high | low
    style: str  # energetic | calm
    focus: str  # quality | value | benefits

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


_FOCUS_ROTATION = {"quality": "value", "value": "benefits", "benefits": "quality"}


def analyze_approach(script: ScriptRecord) -> Approach:
    text = script.full_text().lower()
    if "quality" in text:
        focus = "quality"
    elif "price" in text:
        focus = "value"
    else:
        focus = "benefits"
    return Approach(
        urgency="high" if ("now" in text or "today" in text) else "low",
        style="energetic" if ("🔥" in text or "⚡" in text) else "calm",
        focus=focus,
    )


def invert_approach(approach: Approach) -> Approach:
    return Approach(
        urgency="low" if approach.urgency == "high" else "high",
        style="calm" if approach.style == "energetic" else "energetic",
        focus=_FOCUS_ROTATION.get(approach.focus, "quality"),
    )


# Pools for the alternative generator. Each line carries only the signal of
# its own axis so a generated script reads back as the approach it was built
# from (no "now"/"today", fire/bolt emoji, "quality" or "price" elsewhere).
ALT_HOOKS = {
    "energetic": ("🚀 Revolutionary {title}!", "⚡ Meet the all-new {title}!", "🚀 {title} changes everything!"),
    "calm": ("Introducing the refined {title}", "Meet {title}, thoughtfully made", "A closer look at {title}"),
}
ALT_PROBLEM_SOLUTION = {
    "quality": ("Experience unmatched quality and craftsmanship.",
                "Quality you can feel in every single detail."),
    "value": ("Get premium results without the premium price.",
              "Top-tier results at a price that makes sense."),
    "benefits": ("Discover benefits that transform your daily routine.",
                 "Small change, big difference in your everyday life."),
}
ALT_SHOWCASES = (
    "{title} - where innovation meets perfection. See the difference.",
    "{title}: thoughtful design, remarkable results.",
)
ALT_CTAS = {
    "high": ("Order now! Limited availability! {emoji}", "Get yours today! {emoji}"),
    "low": ("Discover more about {title} {emoji}", "Explore the {title} collection {emoji}"),
}
ALT_CTA_EMOJI = {("high", "energetic"): "🔥", ("high", "calm"): "🛒",
                 ("low", "energetic"): "⚡", ("low", "calm"): "🌟"}


# ---------------------------------------------------------------------------
# ScriptEngine
# ---------------------------------------------------------------------------

class ScriptEngine:
    """Builds ScriptRecords. Inject `rng` for reproducible template picks."""

    def __init__(self, rng: Optional[random.Random] = None, clock: Callable[[], str] = utc_now_iso):
        self.rng = rng or random.Random()
        self.clock = clock

    # -- primary ---------------------------------------------------------

    def synthesize(self, product: ProductRecord) -> ScriptRecord:
        try:
            script = self._build_primary(product)
            validate_script(script)
            return script
        except Exception as exc:  # noqa: BLE001
            log.warning("script synthesis failed for %r, using fallback: %s", product.title, exc)
            return self.fallback_script(product)

    def _build_primary(self, product: ProductRecord) -> ScriptRecord:
        profile = profile_product(product)
        title = product.title
        texts = {
            SceneType.HOOK.value: self.rng.choice(HOOKS[profile.urgency]).format(title=title),
            SceneType.PROBLEM_SOLUTION.value: PROBLEM_SOLUTION.get(
                profile.category, PROBLEM_SOLUTION["general"]
            ).format(benefit=profile.benefits[0] if profile.benefits else "amazing benefits"),
            SceneType.PRODUCT_SHOWCASE.value: SHOWCASES.get(
                profile.price_tier, SHOWCASES["affordable"]
            ).format(title=title, benefits=" and ".join(profile.benefits[:2]) or "premium quality"),
            SceneType.CALL_TO_ACTION.value: self._pick_cta(profile.urgency, product.price),
        }
        specs = []
        for scene_type, duration, visual, animation in SCENE_PLAN:
            if scene_type == SceneType.CALL_TO_ACTION.value and profile.urgency == "high":
                animation = "bounce"
            specs.append({
                "type": scene_type,
                "duration": duration,
                "text": texts[scene_type],
                "visual_direction": visual,
                "text_animation": animation,
            })
        scenes = scenes_from_specs(specs)
        return ScriptRecord(
            title=f"{title} - Video Advertisement",
            total_duration=sum(s.duration for s in scenes),
            scenes=scenes,
            voiceover_notes=voiceover_notes(profile),
            background_music=background_music(profile),
            metadata={
                "category": profile.category,
                "priceTier": profile.price_tier,
                "urgency": profile.urgency,
                "benefits": list(profile.benefits),
                "generatedAt": self.clock(),
                "generator": GENERATOR_PRIMARY,
            },
        )

    def _pick_cta(self, urgency: str, price: str) -> str:
        with_price, without_price = self.rng.choice(CTAS[urgency])
        return with_price.format(price=price) if price else without_price

    # -- alternative -----------------------------------------------------

    def synthesize_alternative(self, product: ProductRecord, previous: ScriptRecord) -> ScriptRecord:
        try:
            script = self._build_alternative(product, previous)
            validate_script(script)
            return script
        except Exception as exc:  # noqa: BLE001
            log.warning("alternative synthesis failed for %r, using fallback: %s", product.title, exc)
            return self.fallback_script(product)

    def _build_alternative(self, product: ProductRecord, previous: ScriptRecord) -> ScriptRecord:
        before = analyze_approach(previous)
        approach = invert_approach(before)
        title = product.title
        energetic = approach.style == "energetic"
        urgent = approach.urgency == "high"
        emoji = ALT_CTA_EMOJI[(approach.urgency, approach.style)]

        specs = [
            {
                "type": SceneType.HOOK.value,
                "duration": 4,
                "text": self.rng.choice(ALT_HOOKS[approach.style]).format(title=title),
                "visual_direction": "Product showcase with smooth transitions",
                "text_animation": "bounce" if energetic else "fade-in",
            },
            {
                "type": SceneType.PROBLEM_SOLUTION.value,
                "duration": 8,
                "text": self.rng.choice(ALT_PROBLEM_SOLUTION[approach.focus]),
                "visual_direction": "Feature highlights with elegant presentation",
                "text_animation": "slide-up",
            },
            {
                "type": SceneType.PRODUCT_SHOWCASE.value,
                "duration": 6,
                "text": self.rng.choice(ALT_SHOWCASES).format(title=title),
                "visual_direction": "Detailed product views with professional lighting",
                "text_animation": "zoom-in",
            },
            {
                "type": SceneType.CALL_TO_ACTION.value,
                "duration": 3,
                "text": self.rng.choice(ALT_CTAS[approach.urgency]).format(title=title, emoji=emoji),
                "visual_direction": "Clear call-to-action with contact information",
                "text_animation": "bounce" if urgent else "fade-in",
            },
        ]
        scenes = scenes_from_specs(specs)
        return ScriptRecord(
            title=f"{title} - Alternative Video Ad",
            total_duration=sum(s.duration for s in scenes),
            scenes=scenes,
            voiceover_notes=(
                "Dynamic and exciting delivery with emphasis on key points" if energetic
                else "Professional and trustworthy tone with clear articulation"
            ),
            background_music="upbeat" if energetic else "inspirational",
            metadata={
                "approach": approach.to_dict(),
                "previousApproach": before.to_dict(),
                "generatedAt": self.clock(),
                "generator": GENERATOR_ALTERNATIVE,
            },
        )

    # -- fallback --------------------------------------------------------

    def fallback_script(self, product: Optional[ProductRecord] = None) -> ScriptRecord:
        """Fixed 20s script built only from the title and first feature."""
        title = (product.title if product else "") or "Amazing Product"
        main_feature = product.features[0] if product and product.features else "premium quality"
        scenes = (
            Scene(1, 0, 4, SceneType.HOOK.value, f"🔥 Introducing {title}!",
                  "Hero product image with dynamic zoom", "zoom-in"),
            Scene(2, 4, 8, SceneType.PROBLEM_SOLUTION.value,
                  f"Transform your life with {main_feature} and innovative design.",
                  "Product benefits showcase with smooth transitions", "slide-up"),
            Scene(3, 12, 6, SceneType.PRODUCT_SHOWCASE.value, "✨ Premium quality meets unbeatable value",
                  "Close-up product shots highlighting key features", "fade-in"),
            Scene(4, 18, 2, SceneType.CALL_TO_ACTION.value, "Order Now! 📱",
                  "Strong CTA overlay with product logo", "bounce"),
        )
        return ScriptRecord(
            title=f"{title} Video Ad",
            total_duration=20,
            scenes=scenes,
            voiceover_notes="Upbeat, confident, and persuasive tone with clear pronunciation",
            background_music="upbeat",
            metadata={"generator": GENERATOR_FALLBACK, "generatedAt": self.clock()},
        )
