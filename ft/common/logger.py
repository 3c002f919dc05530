import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from ft.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Every tick loop logs at debug level once a second, so debug output only goes to the per-run debug files. The
# persistent and latest logs stay at info or above and keep the lifecycle history readable.
_FILE_FLOOR = logging.INFO

def _has_handler(logger, handler_name):
    return any(h.get_name() == handler_name for h in logger.handlers)

def _install(logger, handler, handler_name, level, fmt):
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

# Debug runs are named `<name>_<timestamp>.log` and may have rotated `.log.N` siblings. Keeps the newest `keep` runs,
# counting a run and its rotated files as one.
def prune_debug_runs(directory: Path, name, keep):
    runs = {}
    for path in directory.glob(f"{name}_*.log*"):
        runs.setdefault(path.name.split(".log")[0], []).append(path)
    newest_first = sorted(runs.values(), key=lambda files: max(p.stat().st_mtime for p in files), reverse=True)
    for files in newest_first[keep:]:
        for path in files:
            try: path.unlink()
            except OSError: pass

def get_logger(
        name = "focustimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 2 * 1024 * 1024,
        backup_count = 3,
        persistent = True,
        console = False,
        historical_debugs: int = 10,
        debug_run_max_bytes = 5 * 1024 * 1024,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)
    file_level = max(level, _FILE_FLOOR)

    # Persistent log, rotated by size across runs
    if persistent and not _has_handler(logger, f"{name}:persistent"):
        _install(logger,
                 RotatingFileHandler(log_dir / f"{name}.log", maxBytes=max_bytes, backupCount=backup_count,
                                     encoding="utf-8"),
                 f"{name}:persistent", file_level, fmt)

    # Latest-only log, overwritten each run
    if not _has_handler(logger, f"{name}:latest"):
        _install(logger, logging.FileHandler(log_dir / "latest.log", mode="w", encoding="utf-8"),
                 f"{name}:latest", file_level, fmt)

    # One debug file per run, itself capped so a session left ticking overnight can't fill the disk
    if historical_debugs > 0 and not _has_handler(logger, f"{name}:run_debug"):
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        this_run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        _install(logger,
                 RotatingFileHandler(this_run_path, maxBytes=debug_run_max_bytes, backupCount=1, encoding="utf-8"),
                 f"{name}:run_debug", logging.DEBUG, fmt)
        prune_debug_runs(debug_dir, name, historical_debugs)

    # Console, also switchable with FOCUSTIMER_LOG_CONSOLE=1 when running from a terminal
    console = console or os.getenv("FOCUSTIMER_LOG_CONSOLE") == "1"
    if console and not _has_handler(logger, f"{name}:console"):
        _install(logger, logging.StreamHandler(), f"{name}:console", level, fmt)

    return logger

log = get_logger(level=logging.DEBUG,console=False,historical_debugs=10)
log.info("=== INITIALIZED NEW SESSION ===")
