"""wpreplace run context

Every component receives a RunContext instead of reading globals. It carries
the cement app (used by Log) and owns the per-run scratch area, which is
removed on every exit path when the context is used in a ``with`` block.
"""

import os
import shutil
import tempfile
import uuid

from wpreplace.core.logging import Log
from wpreplace.core.variables import WPVar


class RunContext:
    """Per-run state: app handle, scratch directory and cleanup registry"""

    def __init__(self, app, scratch_root=None, token=None):
        self.app = app
        self.token = token or f"{os.getpid()}_{uuid.uuid4().hex[:8]}"
        self.scratch_root = scratch_root
        self.scratch_dir = None
        self._cleanup = []

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def open(self):
        if self.scratch_dir is None:
            self.scratch_dir = tempfile.mkdtemp(
                prefix=f"{WPVar.wp_scratch_prefix}{self.token}_",
                dir=self.scratch_root)
            self.register(self.scratch_dir)
            Log.debug(self, f"Scratch area: {self.scratch_dir}")
        return self.scratch_dir

    def register(self, path):
        """Register a file or directory to remove when the run ends"""
        if path not in self._cleanup:
            self._cleanup.append(path)
        return path

    def log_path(self, name):
        """Path of a log file inside the scratch area"""
        return self.register(os.path.join(self.open(), f"{name}.log"))

    def append_log(self, name, text):
        if not text:
            return
        with open(self.log_path(name), 'a') as f:
            f.write(text if text.endswith('\n') else text + '\n')

    def read_log(self, name):
        path = os.path.join(self.open(), f"{name}.log")
        if not os.path.exists(path):
            return ''
        with open(path, 'r') as f:
            return f.read()

    def close(self):
        # Files first, directories last
        for path in reversed(self._cleanup):
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path)
                elif os.path.exists(path):
                    os.remove(path)
            except OSError as e:
                Log.debug(self, f"Could not remove {path}: {e}")
        self._cleanup = []
        self.scratch_dir = None
