"""
Data model for stacks, templates, events and parameter values.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from .status import Phase, classify


@dataclass(frozen=True)
class StringValue:
    """A plain string parameter value."""
    value: str

    def as_string(self) -> str:
        return self.value


@dataclass(frozen=True)
class BoolValue:
    """A boolean parameter value, as YAML reads `true`, `yes` or `on`."""
    value: bool

    def as_string(self) -> str:
        return "True" if self.value else "False"


@dataclass(frozen=True)
class SequenceValue:
    """A list of string or boolean items, submitted comma-joined."""
    items: Tuple[Union[StringValue, BoolValue], ...]

    def as_string(self) -> str:
        return ",".join(item.as_string() for item in self.items)


ParameterValue = Union[StringValue, BoolValue, SequenceValue]


@dataclass
class Template:
    """The parts of a template that stack operations care about."""
    parameters: Dict[str, Any] = field(default_factory=dict)
    description: str = ""

    @property
    def declared_parameters(self) -> FrozenSet[str]:
        """Parameter keys the template accepts."""
        return frozenset(self.parameters)


@dataclass(frozen=True)
class Event:
    """A single stack event."""
    event_id: str
    resource: str
    status: str
    reason: str
    timestamp: datetime
    token: str = ""

    @classmethod
    def from_aws(cls, event: Dict[str, Any]) -> "Event":
        """Build an event from a DescribeStackEvents entry."""
        return cls(
            event_id=event.get("EventId", ""),
            resource=event.get("LogicalResourceId") or "",
            status=event.get("ResourceStatus", ""),
            reason=event.get("ResourceStatusReason") or "",
            timestamp=event["Timestamp"],
            token=event.get("ClientRequestToken") or "",
        )


@dataclass
class Stack:
    """Simplified view of a CloudFormation stack."""
    name: str
    status: str = ""
    reason: str = ""
    description: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    disable_rollback: bool = False
    termination_protection: bool = False
    capabilities: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    parameters: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)
    template: Optional[Template] = None
    template_body: str = ""

    @property
    def phase(self) -> Phase:
        """Coarse phase derived from the raw status."""
        return classify(self.status)

    @classmethod
    def from_aws(cls, stack: Dict[str, Any]) -> "Stack":
        """Build a stack from a DescribeStacks entry."""
        return cls(
            name=stack["StackName"],
            status=stack.get("StackStatus", ""),
            reason=stack.get("StackStatusReason") or "",
            description=stack.get("Description") or "",
            created=stack.get("CreationTime"),
            updated=stack.get("LastUpdatedTime"),
            disable_rollback=bool(stack.get("DisableRollback", False)),
            termination_protection=bool(stack.get("EnableTerminationProtection", False)),
            capabilities=list(stack.get("Capabilities", [])),
            topics=list(stack.get("NotificationARNs", [])),
            parameters={
                p["ParameterKey"]: p.get("ParameterValue", "")
                for p in stack.get("Parameters", [])
            },
            tags={t["Key"]: t.get("Value", "") for t in stack.get("Tags", [])},
            outputs={
                o["OutputKey"]: o.get("OutputValue", "")
                for o in stack.get("Outputs", [])
            },
        )

    @property
    def last_changed(self) -> Optional[datetime]:
        """The update time, or the creation time for never-updated stacks."""
        return self.updated or self.created

    def verbose_line(self) -> str:
        """Tab separated change time, name and status."""
        changed = self.last_changed
        when = changed.astimezone().strftime("%H:%M:%S %Z") if changed else "-"
        return f"{when}\t{self.name}\t{self.status}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for encoders."""
        return {
            "name": self.name,
            "phase": self.phase.value,
            "status": self.status,
            "reason": self.reason,
            "description": self.description,
            "created": self.created.isoformat() if self.created else None,
            "updated": self.updated.isoformat() if self.updated else None,
            "disable_rollback": self.disable_rollback,
            "termination_protection": self.termination_protection,
            "capabilities": list(self.capabilities),
            "topics": list(self.topics),
            "parameters": dict(self.parameters),
            "tags": dict(self.tags),
            "outputs": dict(self.outputs),
        }

    def __str__(self) -> str:
        return self.name
