"""Tests for the shared logger setup (ft.common.logger)."""

import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path


class TestLogger(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)
        self.name = f"focustimer-test-{id(self)}"

    def tearDown(self):
        logger = logging.getLogger(self.name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _old_run(self, stamp, mtime, rotated=False):
        debug_dir = self._tmppath / "debug"
        debug_dir.mkdir(exist_ok=True)
        paths = [debug_dir / f"{self.name}_{stamp}.log"]
        if rotated:
            paths.append(debug_dir / f"{self.name}_{stamp}.log.1")
        for path in paths:
            path.write_text("old\n", encoding="utf-8")
            os.utime(path, (mtime, mtime))
        return paths

    def test_prune_counts_rotated_files_with_their_run(self):
        from ft.common.logger import prune_debug_runs
        oldest = self._old_run("2020-01-01_00-00-00", 1_000, rotated=True)
        middle = self._old_run("2021-01-01_00-00-00", 2_000, rotated=True)
        newest = self._old_run("2022-01-01_00-00-00", 3_000)
        prune_debug_runs(self._tmppath / "debug", self.name, keep=2)
        self.assertTrue(all(not p.exists() for p in oldest))
        self.assertTrue(all(p.exists() for p in middle + newest))

    def test_new_run_prunes_older_debug_runs(self):
        from ft.common.logger import get_logger
        old = self._old_run("2000-01-01_00-00-00", 1_000, rotated=True)
        get_logger(self.name, level=logging.DEBUG, log_dir=self._tmppath, historical_debugs=1)
        self.assertTrue(all(not p.exists() for p in old))
        self.assertEqual(len(list((self._tmppath / "debug").glob(f"{self.name}_*.log"))), 1)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        from ft.common.logger import get_logger
        first = get_logger(self.name, level=logging.DEBUG, log_dir=self._tmppath)
        count = len(first.handlers)
        second = get_logger(self.name, level=logging.DEBUG, log_dir=self._tmppath)
        self.assertIs(first, second)
        self.assertEqual(len(second.handlers), count)
        self.assertEqual(count, 3)

    def test_debug_lines_only_reach_the_run_debug_file(self):
        from ft.common.logger import get_logger
        logger = get_logger(self.name, level=logging.DEBUG, log_dir=self._tmppath)
        logger.debug("tick at 1499s")
        logger.info("session complete")
        for handler in logger.handlers:
            handler.flush()

        latest = (self._tmppath / "latest.log").read_text(encoding="utf-8")
        persistent = (self._tmppath / f"{self.name}.log").read_text(encoding="utf-8")
        run_debug = next((self._tmppath / "debug").glob(f"{self.name}_*.log")).read_text(encoding="utf-8")
        for text in (latest, persistent):
            self.assertIn("session complete", text)
            self.assertNotIn("tick at 1499s", text)
        self.assertIn("tick at 1499s", run_debug)
        self.assertIn("session complete", run_debug)


if __name__ == "__main__":
    unittest.main()
