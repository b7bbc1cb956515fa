#!/usr/bin/env python3
"""Tests for adreel/config.py and adreel/logs.py."""

from __future__ import annotations

import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

_repo = Path(__file__).resolve().parent.parent
if str(_repo) not in sys.path:
    sys.path.insert(0, str(_repo))

from adreel.config import AppConfig, load_config, load_env_file
from adreel.logs import setup_logging


def _clean_env():
    return {k: v for k, v in os.environ.items() if not k.startswith("ADREEL_")}


# ---------------------------------------------------------------
# load_env_file
# ---------------------------------------------------------------

class TestLoadEnvFile(unittest.TestCase):

    def test_reads_pairs_without_overwriting(self):
        with tempfile.TemporaryDirectory() as td:
            env = Path(td) / ".env"
            env.write_text(
                "# comment\n"
                "ADREEL_PORT=4000\n"
                "ADREEL_HOST=\"0.0.0.0\"\n"
                "not a pair\n"
                "ADREEL_LOG_LEVEL=debug\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {"ADREEL_LOG_LEVEL": "WARNING"}, clear=True):
                load_env_file(str(env))
                self.assertEqual(os.environ["ADREEL_PORT"], "4000")
                self.assertEqual(os.environ["ADREEL_HOST"], "0.0.0.0")
                self.assertEqual(os.environ["ADREEL_LOG_LEVEL"], "WARNING")

    def test_missing_file_is_ignored(self):
        with patch.dict(os.environ, {}, clear=True):
            load_env_file("/nonexistent/adreel/.env")
            self.assertEqual(dict(os.environ), {})


# ---------------------------------------------------------------
# load_config
# ---------------------------------------------------------------

class TestLoadConfig(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, _clean_env(), clear=True):
            cfg = load_config(env_file="")
        self.assertEqual(cfg.port, 3001)
        self.assertEqual(cfg.host, "127.0.0.1")
        self.assertEqual(cfg.width, 1080)
        self.assertEqual(cfg.height, 1920)
        self.assertTrue(cfg.headless)
        self.assertEqual(cfg.nav_wait_until, "domcontentloaded")
        self.assertIsNone(cfg.log_dir)
        self.assertTrue(cfg.output_dir.is_absolute())

    def test_overrides(self):
        env = _clean_env()
        env.update({
            "ADREEL_PORT": "8080",
            "ADREEL_HEADLESS": "false",
            "ADREEL_RENDER_TIMEOUT": "12.5",
            "ADREEL_LOG_LEVEL": "debug",
            "ADREEL_MAX_PAGES": "0",
        })
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config(env_file="")
        self.assertEqual(cfg.port, 8080)
        self.assertFalse(cfg.headless)
        self.assertEqual(cfg.render_timeout_s, 12.5)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.max_pages, 1)

    def test_bad_numbers_fall_back(self):
        env = _clean_env()
        env.update({"ADREEL_PORT": "eighty", "ADREEL_EXTRACT_TIMEOUT": "soon"})
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config(env_file="")
        self.assertEqual(cfg.port, 3001)
        self.assertEqual(cfg.extract_timeout_s, 30.0)

    def test_ensure_dirs(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            cfg = AppConfig(output_dir=root / "out", temp_dir=root / "tmp", log_dir=root / "logs")
            cfg.ensure_dirs()
            self.assertTrue((root / "out").is_dir())
            self.assertTrue((root / "tmp").is_dir())
            self.assertTrue((root / "logs").is_dir())


# ---------------------------------------------------------------
# setup_logging
# ---------------------------------------------------------------

class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.logger = logging.getLogger("adreel")
        self._saved = list(self.logger.handlers)
        self.logger.handlers = []

    def tearDown(self):
        for h in self.logger.handlers:
            h.close()
        self.logger.handlers = self._saved

    def test_idempotent(self):
        setup_logging("INFO")
        setup_logging("INFO")
        self.assertEqual(len(self.logger.handlers), 1)

    def test_file_handler(self):
        with tempfile.TemporaryDirectory() as td:
            setup_logging("DEBUG", Path(td))
            self.assertEqual(self.logger.level, logging.DEBUG)
            logging.getLogger("adreel.test").info("hello")
            for h in self.logger.handlers:
                h.flush()
            text = (Path(td) / "adreel.log").read_text(encoding="utf-8")
            self.assertIn("hello", text)
            for h in self.logger.handlers:
                h.close()
            self.logger.handlers = []


if __name__ == "__main__":
    unittest.main()
