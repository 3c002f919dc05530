import json
from pathlib import Path
from ft.common.logger import log

# Tiny key/value persistence, one JSON file per key. Values must be JSON serializable.
class JsonFileStore:

    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key):
        return self.directory / f"{key}.json"

    def put(self, key, value):
        path = self._path(key)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2)
        log.debug(f"Stored '{key}' to '{path}'")

    # Returns None when nothing was ever stored under this key. A corrupt file raises json.JSONDecodeError so the
    # caller can decide whether to fall back.
    def get(self, key):
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
