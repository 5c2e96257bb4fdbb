"""
Merging of parameter and tag sources into the final set sent with a request.

Sources are applied in order and later sources win. Every stage builds a new
dictionary, so no input mapping is ever modified.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import ReconcileError
from .models import BoolValue, ParameterValue, SequenceValue, StringValue

logger = logging.getLogger(__name__)

# DescribeStacks masks NoEcho parameter values with this string.
NOECHO_MASK = "****"


def coerce_value(raw: Any, key: str = "") -> ParameterValue:
    """Convert a raw YAML/JSON value into a parameter value.

    Strings and booleans are taken as is, sequences of them are joined with
    commas. Anything else is rejected.
    """
    # bool before str: YAML reads `yes`, `on` and `true` as booleans
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, str):
        return StringValue(raw)
    if isinstance(raw, (list, tuple)):
        items = []
        for item in raw:
            if isinstance(item, bool):
                items.append(BoolValue(item))
            elif isinstance(item, str):
                items.append(StringValue(item))
            else:
                raise ReconcileError(
                    f"something wrong with key {key}: list item {item!r} is not a string"
                )
        return SequenceValue(tuple(items))
    raise ReconcileError(
        f"something wrong with key {key}: unsupported value {raw!r}"
    )


def coerce_mapping(raw: Any, source: str = "<input>") -> Dict[str, str]:
    """Coerce a loaded document into a string to string mapping."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ReconcileError(f"{source}: top level must be a mapping of keys to values")

    result: Dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise ReconcileError(f"{source}: key {key!r} is not a string")
        result[key] = coerce_value(value, key).as_string()
    return result


def parse_inline(text: Optional[str], kind: str = "param") -> Dict[str, str]:
    """Parse a `k=v,k=v` string.

    Pairs without `=` are dropped with a warning. Values keep any further `=`.
    """
    result: Dict[str, str] = {}
    if not text:
        return result

    for pair in text.split(","):
        if pair == "":
            continue
        key, sep, value = pair.partition("=")
        if not sep:
            logger.warning(f"{kind} kvp '{pair}' missing '=' splitter, ignoring")
            continue
        result[key] = value
    return result


def merge_sources(
    file_sources: Iterable[Mapping[str, str]],
    inline: Optional[str] = None,
    kind: str = "param",
) -> Dict[str, str]:
    """Merge file sources in order, then the inline string on top."""
    merged: Dict[str, str] = {}
    for source in file_sources:
        merged = {**merged, **source}
    return {**merged, **parse_inline(inline, kind)}


def reconcile_parameters(
    file_sources: Iterable[Mapping[str, str]],
    inline: Optional[str],
    declared: Iterable[str],
    previous: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Build the parameters to submit for a create or update.

    Args:
        file_sources: Parameter mappings loaded from files, in precedence order
        inline: Comma separated `k=v` pairs, applied last
        declared: Parameter keys declared by the template
        previous: Stored parameters of the stack being updated

    Returns:
        Parameters restricted to the declared keys. On update, declared keys
        missing from every source keep their stored value.
    """
    declared_keys = frozenset(declared)
    merged = merge_sources(file_sources, inline, "param")

    # undeclared keys are dropped so removed template parameters don't fail the call
    selected = {k: v for k, v in merged.items() if k in declared_keys}

    if previous:
        carried = {
            k: v
            for k, v in previous.items()
            if k in declared_keys and k not in selected
        }
        if carried:
            logger.debug(f"carrying forward parameters: {', '.join(sorted(carried))}")
        selected = {**selected, **carried}

    return selected


def reconcile_tags(
    file_sources: Iterable[Mapping[str, str]], inline: Optional[str]
) -> Dict[str, str]:
    """Build the tags to submit. Tags are the complete intended set."""
    return merge_sources(file_sources, inline, "tag")


def parameters_to_aws(
    parameters: Mapping[str, str], previous: Optional[Mapping[str, str]] = None
) -> List[Dict[str, Any]]:
    """Convert parameters to the CloudFormation request shape.

    A carried-forward NoEcho value is only known as its mask, so the stored
    value is reused instead of sending the mask.
    """
    previous = previous or {}
    result: List[Dict[str, Any]] = []
    for key, value in sorted(parameters.items()):
        if value == NOECHO_MASK and previous.get(key) == NOECHO_MASK:
            result.append({"ParameterKey": key, "UsePreviousValue": True})
        else:
            result.append({"ParameterKey": key, "ParameterValue": value})
    return result


def tags_to_aws(tags: Mapping[str, str]) -> List[Dict[str, str]]:
    """Convert tags to the CloudFormation request shape."""
    return [{"Key": key, "Value": value} for key, value in sorted(tags.items())]
