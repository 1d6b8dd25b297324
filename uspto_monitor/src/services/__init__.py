"""Services modules for bootstrap, scheduling and automation control."""

from .bootstrap import ServiceBootstrapper
from .controller import AutomationController
from .scheduler import SchedulerCoordinator
from .status import AutomationStatus

__all__ = [
    'AutomationController',
    'AutomationStatus',
    'ServiceBootstrapper',
    'SchedulerCoordinator'
]
