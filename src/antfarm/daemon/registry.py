"""PID file registry for the single dashboard process."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

# kill(2) takes a C int
MAX_PID = 2**31 - 1


class ProcessState(Enum):
    """What a PID file says about the registered process."""

    STOPPED = "stopped"  # no record
    RUNNING = "running"  # record points at a live process
    STALE = "stale"  # record exists but is dead or unreadable


@dataclass(frozen=True)
class RecordStatus:
    state: ProcessState
    pid: int | None = None


class ProcessRegistry:
    """Singleton-process registry backed by a PID file.

    The registered process calls :meth:`record_self` once it is ready and
    :meth:`clear` on shutdown. Everyone else calls :meth:`check`.
    """

    def __init__(self, pid_file: Path):
        self.pid_file = pid_file

    def record_self(self) -> int:
        """Write the current process id to the PID file."""
        pid = os.getpid()
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.pid_file.with_name(f".{self.pid_file.name}.{pid}")
        tmp_file.write_text(str(pid))
        os.replace(tmp_file, self.pid_file)
        logger.debug("Recorded PID %s in %s", pid, self.pid_file)
        return pid

    def read_pid(self) -> int | None:
        """Parse the recorded PID, or None when absent or malformed."""
        try:
            content = self.pid_file.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read %s: %s", self.pid_file, e)
            return None

        if not (content.isascii() and content.isdigit()):
            return None
        pid = int(content)
        return pid if 0 < pid <= MAX_PID else None

    def check(self) -> RecordStatus:
        """Classify the current record without modifying it."""
        if not self.pid_file.exists():
            return RecordStatus(ProcessState.STOPPED)

        pid = self.read_pid()
        if pid is None:
            # The file may have vanished between the check and the read
            if not self.pid_file.exists():
                return RecordStatus(ProcessState.STOPPED)
            return RecordStatus(ProcessState.STALE)

        if self.is_process_alive(pid):
            return RecordStatus(ProcessState.RUNNING, pid)
        return RecordStatus(ProcessState.STALE, pid)

    def clear(self) -> None:
        """Remove the PID file if present."""
        try:
            self.pid_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove %s: %s", self.pid_file, e)

    def release(self) -> None:
        """Remove the PID file only if it still names the current process."""
        if self.read_pid() == os.getpid():
            self.clear()

    @staticmethod
    def is_process_alive(pid: int) -> bool:
        """Check if a process with given PID is running."""
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but belongs to another user
            return True
        except (OSError, OverflowError):
            return False
        return True
