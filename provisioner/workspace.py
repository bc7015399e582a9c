"""Per-run workspace directory for esxi-vm-builder."""

from __future__ import annotations

import shutil
import signal
import tempfile
import time
from pathlib import Path
from typing import Dict, Optional

from provisioner.constants import WORK_DIR
from provisioner.exceptions import ProvisionInterrupted
from provisioner.utils import ensure_directory, log

_HANDLED_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig is not None
)


class Workspace:
    """Unique directory that is removed on every exit path.

    SIGTERM and SIGHUP are turned into :class:`ProvisionInterrupted` while the
    workspace is active so that cleanup still runs; Ctrl+C already raises
    KeyboardInterrupt.
    """

    def __init__(self, parent: Optional[Path] = None) -> None:
        self.parent = Path(parent) if parent is not None else WORK_DIR
        self.path: Optional[Path] = None
        self._previous_handlers: Dict[int, object] = {}

    def __enter__(self) -> Path:
        ensure_directory(self.parent)
        prefix = f"{int(time.time())}-"
        self.path = Path(tempfile.mkdtemp(prefix=prefix, dir=self.parent))
        self._install_signal_handlers()
        log("INFO", f"Created workspace {self.path}")
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.cleanup()
        finally:
            self._restore_signal_handlers()

    def cleanup(self) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path)
            log("INFO", f"Removed workspace {self.path}")
        self.path = None
        try:
            self.parent.rmdir()
        except OSError:
            # Not empty (another run still owns a workspace) or already gone.
            pass

    def _raise_interrupted(self, signum, frame) -> None:
        raise ProvisionInterrupted(signum)

    def _install_signal_handlers(self) -> None:
        for sig in _HANDLED_SIGNALS:
            try:
                self._previous_handlers[sig] = signal.signal(sig, self._raise_interrupted)
            except ValueError:
                # Not the main thread; signals cannot be intercepted here.
                log("DEBUG", f"Cannot install handler for signal {sig}")

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers = {}
