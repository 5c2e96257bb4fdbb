"""
CloudFormation stack management utilities.
"""

from .models import Event, Stack, Template
from .provider import StackProvider
from .stack_manager import MakeAction, MakeResult, RemoveResult, StackManager
from .status import Phase, classify
from .waiter import RenderConfig, RenderMode, StackWaiter

__all__ = [
    "Event",
    "MakeAction",
    "MakeResult",
    "Phase",
    "RemoveResult",
    "RenderConfig",
    "RenderMode",
    "Stack",
    "StackManager",
    "StackProvider",
    "StackWaiter",
    "Template",
    "classify",
]
