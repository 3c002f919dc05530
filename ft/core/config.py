import json
from ft.common.logger import log
from ft.common.setup import PATHS
from ft.core.session import Durations

#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"

# Default values for every setting. All of them are positive integers except the booleans.
_SETTINGS_DEFAULTS = {
    "focus_seconds": 25 * 60,
    "break_seconds": 5 * 60,
    "tick_interval_ms": 1000,
    "liveness_interval_ms": 5000,
    "max_liveness_failures": 3,
    "stale_after_seconds": 60 * 60,
    "drift_tolerance_seconds": 2,
    "use_timekeeper": True,
}

def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

def _valid(key, value):
    default = _SETTINGS_DEFAULTS[key]
    if isinstance(default, bool):
        return isinstance(value, bool)
    # drift tolerance may legitimately be zero, nothing else may
    minimum = 0 if key == "drift_tolerance_seconds" else 1
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum

def durations_from(settings):
    return Durations(focus=settings["focus_seconds"], break_=settings["break_seconds"])

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings.json, filling in defaults for anything missing or invalid. A missing file gets written out with
# the defaults so there's something to edit.
def load_settings():
    try:
        if not SETTINGS_PATH.exists():
            settings = build_default_settings()
            save_settings(settings)
            log.info("No existing settings.json found in `current`, loading default settings.")
            return settings

        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise TypeError(f"settings.json must hold an object, got {type(loaded).__name__}")

        settings = {}
        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            if key in loaded and _valid(key, loaded[key]):
                settings[key] = loaded[key]
            else:
                defaulted_values.add(key)
                settings[key] = default

        if defaulted_values:
            log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing or invalid values that were "
                        f"defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
        return settings
    # Fall back to defaults in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.",
                    exc_info=True)
        return build_default_settings()

def save_settings(settings):
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===
