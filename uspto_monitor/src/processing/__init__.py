"""Processing modules: novelty decisions, durable state, guarding, the side-effect pipeline and run orchestration."""

from .inflight_guard import InFlightGuard
from .matter_registry import MatterRegistry
from .novelty import is_novel, select_latest_batch, today_key
from .orchestrator import RunOrchestrator
from .pipeline import SideEffectPipeline
from .state_manager import StateManager

__all__ = [
    'InFlightGuard',
    'MatterRegistry',
    'RunOrchestrator',
    'SideEffectPipeline',
    'StateManager',
    'is_novel',
    'select_latest_batch',
    'today_key'
]
