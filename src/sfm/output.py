"""
Encoders for stat output.
"""

import json
from typing import Mapping

import yaml

from .cloudformation.models import Stack
from .errors import InputError

ENCODINGS = ("text", "yaml", "yml", "json")


def encode_mapping(encoding: str, mapping: Mapping[str, str]) -> str:
    """Encode a flat mapping as tab separated text, YAML or JSON."""
    if encoding == "text":
        return "".join(f"{key}\t{value}\n" for key, value in mapping.items())
    if encoding in ("yaml", "yml"):
        return "---\n" + yaml.safe_dump(dict(mapping), default_flow_style=False)
    if encoding == "json":
        return json.dumps(dict(mapping)) + "\n"
    raise InputError(f"unknown encoding: {encoding}")


def encode_stack(encoding: str, stack: Stack) -> str:
    """Encode a stack summary."""
    if encoding == "text":
        rows = [
            ("Description", stack.description),
            ("CreationTime", stack.created or ""),
            ("UpdateTime", stack.updated or ""),
            ("StackStatus", stack.status),
            ("StatusReason", stack.reason),
            ("Capabilities", ", ".join(stack.capabilities)),
            ("DisableRollback", stack.disable_rollback),
            ("TermProtection", stack.termination_protection),
            ("NotificationARNs", ", ".join(stack.topics)),
        ]
        return "".join(f"{key}\t{value}\n" for key, value in rows)
    if encoding in ("yaml", "yml"):
        return yaml.safe_dump(stack.to_dict(), default_flow_style=False)
    if encoding == "json":
        return json.dumps(stack.to_dict(), default=str) + "\n"
    raise InputError(f"unknown encoding '{encoding}'")
