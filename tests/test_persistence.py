"""Tests for everything that touches disk: the JSON store, session snapshots and settings.json.

Covers: ft.core.store, ft.core.snapshot, ft.core.config
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path


NOW = 1_700_000_000_000


# ──────────────────────────────────────────────────────────────────────────
# store.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestJsonFileStore(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_put_then_get(self):
        from ft.core.store import JsonFileStore
        store = JsonFileStore(self._tmppath / "nested" / "current")
        store.put("session", {"remainingSeconds": 12, "kind": "break"})
        self.assertTrue((self._tmppath / "nested" / "current" / "session.json").exists())
        self.assertEqual(store.get("session"), {"remainingSeconds": 12, "kind": "break"})

    def test_missing_key_is_none(self):
        from ft.core.store import JsonFileStore
        self.assertIsNone(JsonFileStore(self._tmppath).get("session"))

    def test_corrupt_file_raises(self):
        from ft.core.store import JsonFileStore
        (self._tmppath / "session.json").write_text("{oops", encoding="utf-8")
        with self.assertRaises(json.JSONDecodeError):
            JsonFileStore(self._tmppath).get("session")


# ──────────────────────────────────────────────────────────────────────────
# snapshot.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestSnapshot(unittest.TestCase):

    def setUp(self):
        from ft.core.session import Durations
        self.durations = Durations(focus=1500, break_=300)
        self.store = _DictStore()

    def snap(self, **overrides):
        raw = {"remainingSeconds": 200, "kind": "break", "running": False, "savedAt": NOW - 30_000}
        raw.update(overrides)
        return raw

    def test_running_session_is_saved_paused_at_expected_value(self):
        from ft.core import session
        from ft.core.session import SessionState
        from ft.core.snapshot import save_snapshot
        running = session.start(SessionState.fresh(self.durations), NOW)
        saved = save_snapshot(self.store, running, NOW + 61_500)
        self.assertEqual(saved, {"remainingSeconds": 1439, "kind": "focus", "running": False,
                                 "savedAt": NOW + 61_500})
        self.assertEqual(self.store.data["session"], saved)

    def test_recent_snapshot_restores_paused(self):
        from ft.core.session import SessionKind
        from ft.core.snapshot import load_snapshot
        self.store.data["session"] = self.snap(running=True)
        state = load_snapshot(self.store, self.durations, NOW)
        self.assertEqual(state.remaining_seconds, 200)
        self.assertEqual(state.kind, SessionKind.BREAK)
        self.assertFalse(state.running)
        self.assertIsNone(state.epoch)

    def test_missing_snapshot_gives_defaults(self):
        from ft.core.snapshot import load_snapshot
        state = load_snapshot(self.store, self.durations, NOW)
        self.assertEqual(state.remaining_seconds, 1500)

    def test_stale_snapshot_gives_defaults(self):
        from ft.core.session import SessionKind
        from ft.core.snapshot import load_snapshot
        self.store.data["session"] = self.snap(savedAt=NOW - 3601 * 1000)
        state = load_snapshot(self.store, self.durations, NOW)
        self.assertEqual(state.kind, SessionKind.FOCUS)
        self.assertEqual(state.remaining_seconds, 1500)

    def test_stale_limit_is_configurable(self):
        from ft.core.snapshot import load_snapshot
        self.store.data["session"] = self.snap(savedAt=NOW - 120_000)
        self.assertEqual(load_snapshot(self.store, self.durations, NOW, stale_after_seconds=60).remaining_seconds,
                         1500)
        self.assertEqual(load_snapshot(self.store, self.durations, NOW, stale_after_seconds=600).remaining_seconds,
                         200)

    def test_future_dated_snapshot_gives_defaults(self):
        from ft.core.snapshot import load_snapshot
        self.store.data["session"] = self.snap(savedAt=NOW + 10 * 60 * 1000)
        self.assertEqual(load_snapshot(self.store, self.durations, NOW).remaining_seconds, 1500)
        # small skew is tolerated
        self.store.data["session"] = self.snap(savedAt=NOW + 5_000)
        self.assertEqual(load_snapshot(self.store, self.durations, NOW).remaining_seconds, 200)

    def test_malformed_snapshots_give_defaults(self):
        from ft.core.session import SessionKind
        from ft.core.snapshot import load_snapshot
        for raw in ([1, 2], self.snap(kind="nap"), self.snap(remainingSeconds=-5),
                    self.snap(remainingSeconds="200"), self.snap(savedAt=None)):
            with self.subTest(raw=raw):
                self.store.data["session"] = raw
                state = load_snapshot(self.store, self.durations, NOW)
                self.assertEqual(state.kind, SessionKind.FOCUS)
                self.assertEqual(state.remaining_seconds, 1500)

    def test_unreadable_store_gives_defaults(self):
        from ft.core.snapshot import load_snapshot
        self.store.error = OSError("disk on fire")
        self.assertEqual(load_snapshot(self.store, self.durations, NOW).remaining_seconds, 1500)

    def test_out_of_range_remaining_is_clamped_to_duration(self):
        from ft.core.snapshot import parse_snapshot
        self.assertEqual(parse_snapshot(self.snap(remainingSeconds=0), self.durations).remaining_seconds, 300)
        self.assertEqual(parse_snapshot(self.snap(remainingSeconds=9999), self.durations).remaining_seconds, 300)

    def test_parse_rejects_bad_shapes(self):
        from ft.core.errors import SnapshotError
        from ft.core.snapshot import parse_snapshot
        with self.assertRaises(SnapshotError):
            parse_snapshot("session", self.durations)
        with self.assertRaises(SnapshotError):
            parse_snapshot(self.snap(remainingSeconds=True), self.durations)

    def test_file_store_roundtrip(self):
        from ft.core import session
        from ft.core.session import SessionState
        from ft.core.snapshot import load_snapshot, save_snapshot
        from ft.core.store import JsonFileStore
        tmpdir = tempfile.mkdtemp()
        try:
            store = JsonFileStore(tmpdir)
            running = session.start(SessionState.fresh(self.durations), NOW)
            save_snapshot(store, running, NOW + 90_000)
            restored = load_snapshot(store, self.durations, NOW + 100_000)
            self.assertEqual(restored.remaining_seconds, 1410)
            self.assertFalse(restored.running)
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)


class _DictStore:

    def __init__(self):
        self.data = {}
        self.error = None

    def put(self, key, value):
        self.data[key] = value

    def get(self, key):
        if self.error is not None:
            raise self.error
        return self.data.get(key)


# ──────────────────────────────────────────────────────────────────────────
# config.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestSettings(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)

        # Monkey-patch the settings path to use temp dir
        from ft.core import config
        self._orig_settings_path = config.SETTINGS_PATH
        config.SETTINGS_PATH = self._tmppath / "settings.json"

    def tearDown(self):
        from ft.core import config
        config.SETTINGS_PATH = self._orig_settings_path
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_fresh_start_writes_defaults(self):
        from ft.core import config
        settings = config.load_settings()
        self.assertEqual(settings, config.build_default_settings())
        self.assertTrue(config.SETTINGS_PATH.exists())
        with open(config.SETTINGS_PATH, "r", encoding="utf-8") as f:
            self.assertEqual(json.load(f)["focus_seconds"], 1500)

    def test_save_and_load_roundtrip(self):
        from ft.core import config
        settings = config.build_default_settings()
        settings["focus_seconds"] = 50 * 60
        settings["use_timekeeper"] = False
        config.save_settings(settings)
        self.assertEqual(config.load_settings(), settings)

    def test_invalid_values_are_defaulted_individually(self):
        from ft.core import config
        config.SETTINGS_PATH.write_text(json.dumps({
            "focus_seconds": 600,
            "break_seconds": 0,
            "tick_interval_ms": "fast",
            "use_timekeeper": 1,
            "drift_tolerance_seconds": 0,
        }), encoding="utf-8")
        with self.assertLogs("focustimer", level="WARNING") as logs:
            settings = config.load_settings()
        self.assertEqual(settings["focus_seconds"], 600)
        self.assertEqual(settings["break_seconds"], 300)
        self.assertEqual(settings["tick_interval_ms"], 1000)
        self.assertIs(settings["use_timekeeper"], True)
        self.assertEqual(settings["drift_tolerance_seconds"], 0)
        self.assertIn("break_seconds", logs.output[0])

    def test_corrupt_settings_fall_back_to_defaults(self):
        from ft.core import config
        config.SETTINGS_PATH.write_text("{not json", encoding="utf-8")
        self.assertEqual(config.load_settings(), config.build_default_settings())
        config.SETTINGS_PATH.write_text("[1, 2, 3]", encoding="utf-8")
        self.assertEqual(config.load_settings(), config.build_default_settings())

    def test_durations_from_settings(self):
        from ft.core.config import build_default_settings, durations_from
        settings = build_default_settings()
        settings["break_seconds"] = 420
        durations = durations_from(settings)
        self.assertEqual((durations.focus, durations.break_), (1500, 420))


if __name__ == "__main__":
    unittest.main()
