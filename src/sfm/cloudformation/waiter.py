"""
Polling a stack until its current operation finishes.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Set

import click
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import StackFailedError, WaitTimeoutError
from .models import Event
from .provider import StackProvider
from .status import Phase

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0
# 1800 polls at 2 seconds is an hour, longer once API backoff is added
MAX_ITERATIONS = 30 * 60

RESOURCE_WIDTH = 30
STATUS_WIDTH = 20


class RenderMode(Enum):
    """How progress is shown while waiting."""
    NONE = "none"
    DOTS = "dots"
    EVENTS = "events"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "RenderMode":
        """Map a --wait value to a mode; unknown values are quiet."""
        for mode in cls:
            if mode.value == name:
                return mode
        return cls.NONE


@dataclass(frozen=True)
class Palette:
    """ANSI color codes for event statuses."""
    reset: str = "\033[0m"
    success: str = "\033[32m"
    error: str = "\033[31m"
    caution: str = "\033[36m"


@dataclass(frozen=True)
class RenderConfig:
    """Terminal rendering settings, resolved once by the caller."""
    enabled: bool = True
    palette: Palette = field(default_factory=Palette)

    def status_color(self, status: str) -> str:
        """Pick the color for a resource status."""
        if not self.enabled:
            return ""
        if status.endswith("ROLLBACK_COMPLETE"):
            return self.palette.caution
        if status.endswith("_COMPLETE"):
            return self.palette.success
        if status.endswith("_FAILED"):
            return self.palette.error
        return ""

    @property
    def reset(self) -> str:
        return self.palette.reset if self.enabled else ""


def truncate(text: str, width: int) -> str:
    """Shorten text longer than width, marking the cut with an ellipsis."""
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


def format_event(event: Event, render: Optional[RenderConfig] = None) -> str:
    """Format an event as a single terminal line."""
    render = render or RenderConfig()
    resource = truncate(event.resource or "-", RESOURCE_WIDTH)
    status = truncate(event.status, STATUS_WIDTH)
    color = render.status_color(event.status)
    reset = render.reset if color else ""
    reason = event.reason or "-"
    when = event.timestamp.astimezone().strftime("%H:%M:%S %Z")
    return (
        f"{when} {resource:<{RESOURCE_WIDTH}} "
        f"{color}{status:<{STATUS_WIDTH}}{reset} {reason}"
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StackWaiter:
    """Block on a stack until it leaves the in-progress phase."""

    def __init__(
        self,
        provider: StackProvider,
        render: Optional[RenderConfig] = None,
        poll_interval: float = POLL_INTERVAL,
        max_iterations: int = MAX_ITERATIONS,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = utcnow,
        echo: Callable[..., None] = click.echo,
    ):
        self.provider = provider
        self.render = render or RenderConfig()
        self.poll_interval = poll_interval
        self.max_iterations = max_iterations
        self.sleep = sleep
        self.now = now
        self.echo = echo

    def block(self, stack_name: str, mode: RenderMode = RenderMode.NONE) -> None:
        """Wait for the stack's current operation to finish.

        Raises:
            StackFailedError: The stack reached an error phase
            WaitTimeoutError: The iteration budget ran out
        """
        started = self.now()
        seen: Set[datetime] = set()
        dots = False

        try:
            for _ in range(self.max_iterations):
                try:
                    stack = self.provider.describe(stack_name)
                except (ClientError, BotoCoreError) as e:
                    # a deleted stack eventually can't be described at all
                    logger.info(f"stopped waiting on {stack_name}: {e}")
                    return

                if stack is None:
                    logger.debug(f"stack {stack_name} is gone")
                    return
                if stack.phase is Phase.OK:
                    return
                if stack.phase is Phase.ERROR:
                    raise StackFailedError(stack_name, stack.status, stack.phase.value)

                if mode is RenderMode.EVENTS:
                    self._render_events(stack_name, started, seen)
                elif mode is RenderMode.DOTS:
                    self.echo(".", nl=False)
                    dots = True

                self.sleep(self.poll_interval)
        finally:
            if dots:
                self.echo()

        raise WaitTimeoutError(stack_name, self.max_iterations)

    def _render_events(self, stack_name: str, started: datetime, seen: Set[datetime]) -> None:
        """Print events newer than the wait, oldest first, once per timestamp."""
        try:
            events = self.provider.list_events(stack_name)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"cant describe stack events for {stack_name}: {e}")
            return

        for event in reversed(events):
            if event.timestamp < started or event.timestamp in seen:
                continue
            self.echo(format_event(event, self.render))
            seen.add(event.timestamp)
