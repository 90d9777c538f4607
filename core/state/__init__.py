"""
core/state - 재개 가능한 실행 상태

Usage:
    from core.state import Outcome, RunStateStore
"""

from .store import RunStateStore, read_state
from .types import Outcome, RunState

__all__ = [
    "Outcome",
    "RunState",
    "RunStateStore",
    "read_state",
]
