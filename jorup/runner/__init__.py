"""Supervision of the node process of a channel."""

from .companion import ensure_compatible, query_version
from .liveness import LivenessProbe, PsutilLiveness
from .supervisor import SessionState, StaleSessionWarning, Supervisor

__all__ = [
    "LivenessProbe",
    "PsutilLiveness",
    "SessionState",
    "StaleSessionWarning",
    "Supervisor",
    "ensure_compatible",
    "query_version",
]
