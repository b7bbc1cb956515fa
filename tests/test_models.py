#!/usr/bin/env python3
"""Tests for adreel/models.py: wire shapes and input coercion."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
if str(_repo) not in sys.path:
    sys.path.insert(0, str(_repo))

from adreel.errors import InputValidationError
from adreel.models import (
    PipelineResult,
    ProductRecord,
    Scene,
    ScriptRecord,
    VideoArtifact,
    scenes_from_specs,
)


def _scene_dict(**over):
    d = {"id": 1, "startTime": 0, "duration": 4, "type": "hook", "text": "Hello"}
    d.update(over)
    return d


# ---------------------------------------------------------------
# ProductRecord
# ---------------------------------------------------------------

class TestProductRecord(unittest.TestCase):

    def test_to_dict_keys(self):
        p = ProductRecord(title="Mug", price="$12", images=("https://x/a.jpg",),
                          features=("Big",), source_url="https://shop/x", is_synthetic=True)
        d = p.to_dict()
        self.assertEqual(d["title"], "Mug")
        self.assertEqual(d["images"], ["https://x/a.jpg"])
        self.assertEqual(d["features"], ["Big"])
        self.assertEqual(d["url"], "https://shop/x")
        self.assertIs(d["isSynthetic"], True)

    def test_from_dict_minimal(self):
        p = ProductRecord.from_dict({"title": "  Mug "})
        self.assertEqual(p.title, "Mug")
        self.assertEqual(p.images, ())
        self.assertFalse(p.is_synthetic)

    def test_from_dict_accepts_demo_alias(self):
        self.assertTrue(ProductRecord.from_dict({"title": "Mug", "isDemo": True}).is_synthetic)

    def test_from_dict_drops_blank_list_entries(self):
        p = ProductRecord.from_dict({"title": "Mug", "features": ["Big", "  "]})
        self.assertEqual(p.features, ("Big",))

    def test_missing_title(self):
        with self.assertRaises(InputValidationError):
            ProductRecord.from_dict({"price": "$1"})

    def test_blank_title(self):
        with self.assertRaises(InputValidationError):
            ProductRecord.from_dict({"title": "   "})

    def test_not_an_object(self):
        with self.assertRaises(InputValidationError):
            ProductRecord.from_dict(["title"])
        with self.assertRaises(InputValidationError):
            ProductRecord.from_dict(None)

    def test_bad_images_type(self):
        with self.assertRaises(InputValidationError):
            ProductRecord.from_dict({"title": "Mug", "images": "https://x/a.jpg"})


# ---------------------------------------------------------------
# Scene / ScriptRecord
# ---------------------------------------------------------------

class TestScene(unittest.TestCase):

    def test_end_time(self):
        self.assertEqual(Scene(1, 4, 8, "problem-solution", "x").end_time, 12)

    def test_round_trip_shape(self):
        s = Scene.from_dict(_scene_dict(visualDirection="Zoom", textAnimation="bounce"))
        self.assertEqual(s.to_dict(), {
            "id": 1, "startTime": 0, "duration": 4, "type": "hook", "text": "Hello",
            "visualDirection": "Zoom", "textAnimation": "bounce",
        })

    def test_whole_float_accepted(self):
        self.assertEqual(Scene.from_dict(_scene_dict(duration=4.0)).duration, 4)

    def test_fractional_rejected(self):
        with self.assertRaises(InputValidationError):
            Scene.from_dict(_scene_dict(duration=2.5))

    def test_zero_duration_rejected(self):
        with self.assertRaises(InputValidationError):
            Scene.from_dict(_scene_dict(duration=0))

    def test_bool_rejected(self):
        with self.assertRaises(InputValidationError):
            Scene.from_dict(_scene_dict(startTime=True))

    def test_unknown_type_rejected(self):
        with self.assertRaises(InputValidationError):
            Scene.from_dict(_scene_dict(type="outro"))

    def test_missing_id_uses_position(self):
        d = _scene_dict()
        del d["id"]
        self.assertEqual(Scene.from_dict(d, 2).id, 3)


class TestScriptRecord(unittest.TestCase):

    def test_from_dict(self):
        s = ScriptRecord.from_dict({
            "title": "Ad",
            "totalDuration": 7,
            "scenes": [_scene_dict(), _scene_dict(id=2, startTime=4, duration=3, type="call-to-action")],
            "backgroundMusic": "modern",
        })
        self.assertEqual(s.total_duration, 7)
        self.assertEqual(len(s.scenes), 2)
        self.assertEqual(s.background_music, "modern")
        self.assertEqual(s.full_text(), "Hello Hello")

    def test_total_defaults_to_sum(self):
        s = ScriptRecord.from_dict({"scenes": [_scene_dict(duration=5)]})
        self.assertEqual(s.total_duration, 5)
        self.assertEqual(s.title, "Video Advertisement")

    def test_fractional_total_rejected(self):
        with self.assertRaises(InputValidationError) as ctx:
            ScriptRecord.from_dict({"totalDuration": 21.5, "scenes": [_scene_dict(duration=5)]})
        self.assertEqual(str(ctx.exception), "totalDuration must be a whole number of seconds")

    def test_whole_float_total_accepted(self):
        s = ScriptRecord.from_dict({"totalDuration": 5.0, "scenes": [_scene_dict(duration=5)]})
        self.assertEqual(s.total_duration, 5)
        self.assertIsInstance(s.total_duration, int)

    def test_non_numeric_total_rejected(self):
        for bad in ("7", None, True):
            with self.subTest(bad=bad):
                with self.assertRaises(InputValidationError):
                    ScriptRecord.from_dict({"totalDuration": bad, "scenes": [_scene_dict(duration=5)]})

    def test_empty_scenes(self):
        with self.assertRaises(InputValidationError):
            ScriptRecord.from_dict({"scenes": []})

    def test_scene_error_propagates(self):
        with self.assertRaises(InputValidationError):
            ScriptRecord.from_dict({"scenes": [_scene_dict(text="")]})

    def test_to_dict(self):
        s = ScriptRecord(title="Ad", total_duration=4, scenes=(Scene(1, 0, 4, "hook", "Hi"),),
                         metadata={"generator": "x"})
        d = s.to_dict()
        self.assertEqual(d["totalDuration"], 4)
        self.assertEqual(d["scenes"][0]["startTime"], 0)
        self.assertEqual(d["metadata"], {"generator": "x"})


class TestScenesFromSpecs(unittest.TestCase):

    def test_contiguous(self):
        scenes = scenes_from_specs([
            {"type": "hook", "duration": 4, "text": "a"},
            {"type": "problem-solution", "duration": 8, "text": "b"},
            {"type": "call-to-action", "duration": 3, "text": "c"},
        ])
        self.assertEqual([(s.id, s.start_time, s.end_time) for s in scenes],
                         [(1, 0, 4), (2, 4, 12), (3, 12, 15)])


# ---------------------------------------------------------------
# VideoArtifact / PipelineResult
# ---------------------------------------------------------------

class TestVideoArtifact(unittest.TestCase):

    def test_url_and_dict(self):
        v = VideoArtifact(id="video_1_abc", file_path=Path("/tmp/out/video_1_abc.mp4"),
                          duration=21, file_size_bytes=1234)
        self.assertEqual(v.url, "/videos/video_1_abc.mp4")
        d = v.to_dict()
        self.assertEqual(d["videoId"], "video_1_abc")
        self.assertEqual(d["videoUrl"], "/videos/video_1_abc.mp4")
        self.assertEqual(d["fileSize"], 1234)

    def test_pipeline_result(self):
        v = VideoArtifact(id="v", file_path=Path("v.mp4"), duration=4, file_size_bytes=1)
        s = ScriptRecord(title="Ad", total_duration=4, scenes=(Scene(1, 0, 4, "hook", "Hi"),))
        r = PipelineResult(product=ProductRecord(title="Mug"), script=s, video=v)
        self.assertEqual(set(r.to_dict()), {"productData", "script", "video"})


if __name__ == "__main__":
    unittest.main()
