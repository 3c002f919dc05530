"""Deterministic stand-ins for the clock, tick loops and collaborators used across the tests."""


class FakeClock:
    """Wall clock in integer milliseconds that only moves when told to."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


class ManualScheduler:
    """Tick loop handle that fires only when the test calls fire()."""

    def __init__(self, name="tick"):
        self.name = name
        self.interval_ms = None
        self.starts = 0
        self._callback = None

    @property
    def active(self):
        return self._callback is not None

    def start(self, interval_ms, callback):
        self.stop()
        self.interval_ms = interval_ms
        self._callback = callback
        self.starts += 1

    def stop(self):
        self._callback = None

    def fire(self, times=1):
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()


class RecordingDisplay:

    def __init__(self):
        self.models = []
        self.fail_next = False

    def render(self, model):
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("display exploded")
        self.models.append(model)

    @property
    def last(self):
        return self.models[-1]


class RecordingNotifier:

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def notify(self, title, body):
        if self.fail:
            raise OSError("notification daemon is gone")
        self.sent.append((title, body))


class MemoryStore:

    def __init__(self):
        self.data = {}

    def put(self, key, value):
        self.data[key] = value

    def get(self, key):
        return self.data.get(key)
