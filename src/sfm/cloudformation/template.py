"""
Template parsing.
"""

from typing import Any, Union

import yaml

from ..errors import TemplateError
from .models import Template

# Short form intrinsics that keep their name in long form
UNPREFIXED_TAGS = {"Ref", "Condition"}


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader that reads short form intrinsics (`!Ref`, `!Sub` ...) as long form."""


def construct_intrinsic(loader: TemplateLoader, tag_suffix: str, node: yaml.Node) -> Any:
    """Expand `!Name value` into `{"Fn::Name": value}`."""
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    key = tag_suffix if tag_suffix in UNPREFIXED_TAGS else f"Fn::{tag_suffix}"
    return {key: value}


TemplateLoader.add_multi_constructor("!", construct_intrinsic)


def load_document(body: Union[str, bytes]) -> Any:
    """Load a YAML or JSON template document."""
    try:
        return yaml.load(body, Loader=TemplateLoader)
    except yaml.YAMLError as e:
        raise TemplateError(f"can't unmarshal template: {e}") from e


def parse_template(body: Union[str, bytes]) -> Template:
    """Parse a template body into its declared parameters.

    Raises:
        TemplateError: The body is not a YAML/JSON mapping, or its
            Parameters section is not a mapping.
    """
    document = load_document(body)
    if not isinstance(document, dict):
        raise TemplateError("can't unmarshal template: top level is not a mapping")

    parameters = document.get("Parameters") or {}
    if not isinstance(parameters, dict):
        raise TemplateError("can't unmarshal template: Parameters is not a mapping")

    description = document.get("Description") or ""
    return Template(parameters=dict(parameters), description=str(description))
