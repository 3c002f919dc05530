import os
import sys
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories, erroring out when a file sits where the folder should be.
def ensure_directory(path: Path):
    if path.exists() and not path.is_dir():
        raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the per-user data folder. FOCUSTIMER_HOME always wins, then APPDATA on Windows, then the XDG data home.
def _user_data_root() -> Path:
    override = os.getenv("FOCUSTIMER_HOME")
    if override:
        return Path(override)
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        if not appdata:
            raise RuntimeError("Missing APPDATA environment variable, cannot determine data directories.")
        return Path(appdata) / "FocusTimer"
    xdg = os.getenv("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / "FocusTimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path

    logs: Path
    current: Path

    @staticmethod
    def build():
        # Folder for all focustimer user-specific and session related stuff
        data = ensure_directory(_user_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
        )
PATHS = ProjectPaths.build()
