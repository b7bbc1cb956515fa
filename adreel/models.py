"""Records passed between pipeline stages.

All records are frozen dataclasses. `to_dict()` emits the camelCase wire
shape used by the HTTP API; `from_dict()` validates caller-supplied JSON and
raises InputValidationError on anything malformed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Tuple

from adreel.errors import InputValidationError


class SceneType(str, Enum):
    HOOK = "hook"
    PROBLEM_SOLUTION = "problem-solution"
    PRODUCT_SHOWCASE = "product-showcase"
    CALL_TO_ACTION = "call-to-action"


SCENE_TYPES = {t.value for t in SceneType}


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _require_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InputValidationError(f"{what} must be an object")
    return data


def _str_field(data: Dict[str, Any], key: str, *, required: bool = False, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        if required:
            raise InputValidationError(f"{key} is required")
        return default
    if not isinstance(value, str):
        raise InputValidationError(f"{key} must be a string")
    value = value.strip()
    if required and not value:
        raise InputValidationError(f"{key} must be non-empty")
    return value


def _str_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InputValidationError(f"{key} must be a list of strings")
    return tuple(v.strip() for v in value if v.strip())


def _int_field(data: Dict[str, Any], key: str, *, minimum: int) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputValidationError(f"{key} must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise InputValidationError(f"{key} must be a whole number of seconds")
    value = int(value)
    if value < minimum:
        raise InputValidationError(f"{key} must be >= {minimum}")
    return value


# ---------------------------------------------------------------------------
# ProductRecord
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProductRecord:
    title: str
    description: str = ""
    price: str = ""
    images: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    source_url: str = ""
    is_synthetic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "images": list(self.images),
            "features": list(self.features),
            "url": self.source_url,
            "isSynthetic": self.is_synthetic,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ProductRecord":
        data = _require_dict(data, "productData")
        synthetic = data.get("isSynthetic", data.get("isDemo", False))
        return cls(
            title=_str_field(data, "title", required=True),
            description=_str_field(data, "description"),
            price=_str_field(data, "price"),
            images=_str_list(data, "images"),
            features=_str_list(data, "features"),
            source_url=_str_field(data, "url"),
            is_synthetic=bool(synthetic),
        )


# ---------------------------------------------------------------------------
# Scene / ScriptRecord
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Scene:
    id: int
    start_time: int
    duration: int
    type: str
    text: str
    visual_direction: str = ""
    text_animation: str = "fade-in"

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "duration": self.duration,
            "type": self.type,
            "text": self.text,
            "visualDirection": self.visual_direction,
            "textAnimation": self.text_animation,
        }

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> "Scene":
        data = _require_dict(data, f"scenes[{index}]")
        scene_type = _str_field(data, "type", default=SceneType.PRODUCT_SHOWCASE.value)
        if scene_type not in SCENE_TYPES:
            raise InputValidationError(f"scenes[{index}].type must be one of {sorted(SCENE_TYPES)}")
        raw_id = data.get("id", index + 1)
        return cls(
            id=raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else index + 1,
            start_time=_int_field(data, "startTime", minimum=0),
            duration=_int_field(data, "duration", minimum=1),
            type=scene_type,
            text=_str_field(data, "text", required=True),
            visual_direction=_str_field(data, "visualDirection"),
            text_animation=_str_field(data, "textAnimation", default="fade-in"),
        )


@dataclass(frozen=True)
class ScriptRecord:
    title: str
    total_duration: int
    scenes: Tuple[Scene, ...]
    voiceover_notes: str = ""
    background_music: str = "upbeat"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def full_text(self) -> str:
        return " ".join(s.text for s in self.scenes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "totalDuration": self.total_duration,
            "scenes": [s.to_dict() for s in self.scenes],
            "voiceoverNotes": self.voiceover_notes,
            "backgroundMusic": self.background_music,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ScriptRecord":
        data = _require_dict(data, "script")
        raw_scenes = data.get("scenes")
        if not isinstance(raw_scenes, list) or not raw_scenes:
            raise InputValidationError("script.scenes must be a non-empty list")
        scenes = tuple(Scene.from_dict(s, i) for i, s in enumerate(raw_scenes))
        if "totalDuration" in data:
            total = _int_field(data, "totalDuration", minimum=0)
        else:
            total = sum(s.duration for s in scenes)
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InputValidationError("metadata must be an object")
        return cls(
            title=_str_field(data, "title", default="Video Advertisement") or "Video Advertisement",
            total_duration=total,
            scenes=scenes,
            voiceover_notes=_str_field(data, "voiceoverNotes"),
            background_music=_str_field(data, "backgroundMusic", default="upbeat") or "upbeat",
            metadata=dict(metadata),
        )


# ---------------------------------------------------------------------------
# VideoArtifact / PipelineResult
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VideoArtifact:
    id: str
    file_path: Path
    duration: int
    file_size_bytes: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"/videos/{self.file_path.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoId": self.id,
            "videoUrl": self.url,
            "duration": self.duration,
            "fileSize": self.file_size_bytes,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class PipelineResult:
    product: ProductRecord
    script: ScriptRecord
    video: VideoArtifact

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productData": self.product.to_dict(),
            "script": self.script.to_dict(),
            "video": self.video.to_dict(),
        }


def scenes_from_specs(specs: List[Dict[str, Any]], start: int = 0) -> Tuple[Scene, ...]:
    """Lay out scene specs back to back from `start`.

    Each entry carries type, duration, text and optionally visual_direction
    and text_animation; start times are derived so scenes stay contiguous.
    """
    scenes: List[Scene] = []
    t = start
    for i, spec in enumerate(specs, start=1):
        scenes.append(Scene(
            id=i,
            start_time=t,
            duration=int(spec["duration"]),
            type=str(spec["type"]),
            text=str(spec["text"]),
            visual_direction=str(spec.get("visual_direction", "")),
            text_animation=str(spec.get("text_animation", "fade-in")),
        ))
        t += int(spec["duration"])
    return tuple(scenes)

