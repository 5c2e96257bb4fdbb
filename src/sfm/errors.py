"""
Exception hierarchy for stack operations.
"""

from typing import Optional


class SfmError(Exception):
    """Base class for all sfm errors."""


class InputError(SfmError):
    """Bad local input: files, templates, arguments. Never retryable."""


class ConfigError(InputError):
    """Missing or invalid configuration."""


class SourceError(InputError):
    """A template, parameter or tag source could not be read."""


class TemplateError(InputError):
    """A template body could not be parsed."""


class ReconcileError(InputError):
    """A parameter or tag source holds a value that cannot be coerced."""


class StackNotFoundError(SfmError):
    """The named stack does not exist."""

    def __init__(self, stack_name: str):
        super().__init__(f"stack '{stack_name}' not found")
        self.stack_name = stack_name


class StackOperationError(SfmError):
    """The remote API rejected a create, update or delete request."""

    def __init__(self, operation: str, stack_name: str, message: str):
        super().__init__(f"cant {operation} stack '{stack_name}': {message}")
        self.operation = operation
        self.stack_name = stack_name


class StackRecoveryError(StackOperationError):
    """A stack stuck after a failed create could not be removed."""

    def __init__(self, stack_name: str, status: str, message: str):
        SfmError.__init__(
            self, f"stack '{stack_name}' is in {status} state and {message}"
        )
        self.operation = "recover"
        self.stack_name = stack_name
        self.status = status


class StackAlreadyExistsError(SfmError):
    """Create was rejected because the stack already exists."""


class NoUpdatesError(SfmError):
    """Update was rejected because the stack already matches the request."""


class WaitError(SfmError):
    """Base class for failures while blocking on a stack."""


class StackFailedError(WaitError):
    """The stack reported a failed state while being waited on."""

    def __init__(self, stack_name: str, status: Optional[str], phase: str = "error"):
        super().__init__(f"stack status not 'ok': {status} ({phase})")
        self.stack_name = stack_name
        self.status = status


class WaitTimeoutError(WaitError):
    """The wait gave up before the stack reached a terminal state."""

    def __init__(self, stack_name: str, iterations: int):
        super().__init__(f"timeout waiting on stack '{stack_name}' after {iterations} polls")
        self.stack_name = stack_name
        self.iterations = iterations
