"""Process liveness checks."""

from typing import Protocol

import psutil

from ..errors import LivenessCheckError


class LivenessProbe(Protocol):
    def is_alive(self, pid: int) -> bool: ...


class PsutilLiveness:
    """Liveness via psutil, on every platform psutil supports.

    A zombie counts as dead: it has exited and only waits to be reaped.
    """

    def is_alive(self, pid: int) -> bool:
        try:
            if not psutil.pid_exists(pid):
                return False
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Exists, owned by someone else
            return True
        except psutil.Error as exc:
            raise LivenessCheckError(pid) from exc
