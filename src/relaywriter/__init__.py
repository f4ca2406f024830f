"""Round-robin collaborative writing service.

A shared document is extended one turn at a time by a rotating set of
language-model backends; each reply is trimmed of anything it repeats
before it is appended.
"""

from .models import Contributor, Session, TurnRecord, TurnResult
from .orchestrator import TurnOrchestrator
from .trimmer import trim

__all__ = [
    "Contributor",
    "Session",
    "TurnOrchestrator",
    "TurnRecord",
    "TurnResult",
    "trim",
]
