import time


# Current wall-clock time as integer milliseconds since the unix epoch. Integer math keeps elapsed-second floors exact.
def now_ms():
    return time.time_ns() // 1_000_000


def format_mmss(seconds):
    """Format remaining seconds as MM:SS. Negative values clamp to zero."""
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    return f"{m:02d}:{s:02d}"
