"""
sfm - create, update, delete, inspect and wait on CloudFormation stacks.
"""

__version__ = "1.0.0"

from .cloudformation import StackManager, StackProvider, StackWaiter

__all__ = ["StackManager", "StackProvider", "StackWaiter"]
