#!/usr/bin/env python3
"""Tests for adreel/cli.py: argument parsing, output, exit codes."""

from __future__ import annotations

import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

_repo = Path(__file__).resolve().parent.parent
if str(_repo) not in sys.path:
    sys.path.insert(0, str(_repo))

from adreel import cli
from adreel.config import AppConfig
from adreel.errors import RenderFailure
from adreel.pipeline import Pipeline

from _fakes import REAL, URL, FakeComposer, FakeExtractor


class _CliCase(unittest.TestCase):

    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        root = Path(self._td.name)
        self.cfg = AppConfig(output_dir=root / "videos", temp_dir=root / "tmp", render_workers=1)
        self.composer = FakeComposer()

    def tearDown(self):
        self._td.cleanup()

    def _pipeline(self, cfg: AppConfig) -> Pipeline:
        return Pipeline(cfg, extractor=FakeExtractor(REAL), composer=self.composer)

    def run_cli(self, *argv: str):
        out, err = io.StringIO(), io.StringIO()
        with patch.object(cli, "load_config", return_value=self.cfg), \
                patch.object(cli, "setup_logging"), \
                patch.object(cli, "Pipeline", side_effect=self._pipeline), \
                redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()


class TestParser(unittest.TestCase):

    def test_subcommands(self):
        p = cli.build_parser()
        args = p.parse_args(["run", URL, "--stream"])
        self.assertEqual(args.cmd, "run")
        self.assertTrue(args.stream)
        args = p.parse_args(["script", URL, "--alternative"])
        self.assertTrue(args.alternative)
        args = p.parse_args(["serve", "--port", "9000"])
        self.assertEqual(args.port, 9000)

    def test_no_command(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(cli.main([]), cli.EXIT_ERROR)


class TestRun(_CliCase):

    def test_atomic(self):
        code, out, _ = self.run_cli("run", URL)
        self.assertEqual(code, cli.EXIT_OK)
        self.assertIn("video_1_abcdef.mp4", out)

    def test_atomic_json(self):
        code, out, _ = self.run_cli("run", URL, "--json")
        self.assertEqual(code, cli.EXIT_OK)
        self.assertEqual(set(json.loads(out)), {"productData", "script", "video"})

    def test_stream_json(self):
        code, out, _ = self.run_cli("run", URL, "--stream", "--json")
        self.assertEqual(code, cli.EXIT_OK)
        steps = [json.loads(line)["step"] for line in out.splitlines()]
        self.assertEqual(steps, ["scraping", "scripting", "rendering", "complete"])

    def test_stream_failure(self):
        self.composer = FakeComposer(error=RenderFailure("OOM", "out of memory"))
        code, _, err = self.run_cli("run", URL, "--stream")
        self.assertEqual(code, cli.EXIT_FAILED)
        self.assertIn("out of memory", err)

    def test_atomic_failure(self):
        self.composer = FakeComposer(error=RenderFailure("OOM", "out of memory"))
        code, _, err = self.run_cli("run", URL)
        self.assertEqual(code, cli.EXIT_FAILED)
        self.assertIn("OOM", err)

    def test_invalid_url(self):
        code, _, err = self.run_cli("run", "not-a-url")
        self.assertEqual(code, cli.EXIT_INPUT)
        self.assertIn("Invalid URL format", err)

    def test_unparsable_host(self):
        code, _, err = self.run_cli("scrape", "http://[::1")
        self.assertEqual(code, cli.EXIT_INPUT)
        self.assertIn("Invalid URL format", err)

    def test_renderer_missing(self):
        self.composer = FakeComposer(available=False)
        code, _, err = self.run_cli("run", URL)
        self.assertEqual(code, cli.EXIT_ERROR)
        self.assertIn("ffmpeg", err)


class TestScriptAndScrape(_CliCase):

    def test_scrape(self):
        code, out, _ = self.run_cli("scrape", URL)
        self.assertEqual(code, cli.EXIT_OK)
        self.assertEqual(json.loads(out)["title"], "Ceramic Mug")

    def test_script_text(self):
        code, out, _ = self.run_cli("script", URL)
        self.assertEqual(code, cli.EXIT_OK)
        self.assertIn("Ceramic Mug - Video Advertisement (21s", out)
        self.assertIn("call-to-action", out)

    def test_script_alternative_json(self):
        code, out, _ = self.run_cli("script", URL, "--alternative", "--json")
        self.assertEqual(code, cli.EXIT_OK)
        data = json.loads(out)
        self.assertTrue(data["script"]["title"].endswith("Alternative Video Ad"))
        self.assertEqual(self.composer.calls, 0)


if __name__ == "__main__":
    unittest.main()
