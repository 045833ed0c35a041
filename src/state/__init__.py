from .lock import DedupLock
from .runtime import RuntimeDeps
from .settings import AppSettings
from .envelope import EnvelopeState
from .admission import AdmissionDecision
from .connection import TrackedConnection

__all__ = [
    "AdmissionDecision",
    "AppSettings",
    "DedupLock",
    "EnvelopeState",
    "RuntimeDeps",
    "TrackedConnection",
]
