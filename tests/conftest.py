import os
import tempfile

# ft.common.setup builds its data folders on import, keep test runs out of the real user profile
os.environ.setdefault("FOCUSTIMER_HOME", tempfile.mkdtemp(prefix="focustimer-tests-"))
