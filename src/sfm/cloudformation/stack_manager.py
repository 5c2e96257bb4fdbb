"""
CloudFormation stack lifecycle: create or update, remove, inspect and wait.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from botocore.exceptions import ClientError

from ..errors import (
    InputError,
    NoUpdatesError,
    StackAlreadyExistsError,
    StackNotFoundError,
    StackOperationError,
    StackRecoveryError,
    TemplateError,
    WaitError,
)
from .models import Event, Stack
from .provider import StackProvider, error_message
from .reconcile import (
    parameters_to_aws,
    reconcile_parameters,
    reconcile_tags,
    tags_to_aws,
)
from .status import is_failed_create
from .template import parse_template
from .waiter import RenderMode, StackWaiter

logger = logging.getLogger(__name__)

DEFAULT_CAPABILITIES = ["CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]


class MakeAction(Enum):
    """What make_or_update did to the stack."""
    CREATED = "created"
    RECREATED = "recreated"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class MakeResult:
    """Result of a create or update request."""
    name: str
    token: str
    action: MakeAction
    parameters: Dict[str, str]
    tags: Dict[str, str]


@dataclass
class RemoveResult:
    """Result of a delete request."""
    name: str
    token: str


def new_token() -> str:
    """Generate a ClientRequestToken."""
    return str(uuid.uuid4())


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(
        self,
        provider: StackProvider,
        waiter: Optional[StackWaiter] = None,
        capabilities: Optional[Sequence[str]] = None,
        token_factory: Callable[[], str] = new_token,
    ):
        """
        Initialize stack manager.

        Args:
            provider: CloudFormation provider
            waiter: Waiter used to block on stacks, built from the provider if omitted
            capabilities: Capabilities acknowledged on every create and update
            token_factory: Generator for ClientRequestTokens
        """
        self.provider = provider
        self.waiter = waiter or StackWaiter(provider)
        self.capabilities = list(capabilities or DEFAULT_CAPABILITIES)
        self.token_factory = token_factory

    def _describe(self, stack_name: str) -> Optional[Stack]:
        try:
            return self.provider.describe(stack_name)
        except ClientError as e:
            raise StackOperationError("describe", stack_name, error_message(e)) from e

    def get(self, stack_name: str) -> Stack:
        """Get a stack by name."""
        stack = self._describe(stack_name)
        if stack is None:
            raise StackNotFoundError(stack_name)
        return stack

    def list_stacks(self, glob: str = "*") -> List[Stack]:
        """List stacks whose names match a shell-style glob."""
        glob = glob or "*"
        try:
            return [
                stack
                for stack in self.provider.list_stacks()
                if glob == "*" or fnmatchcase(stack.name, glob)
            ]
        except ClientError as e:
            raise StackOperationError("list", glob, error_message(e)) from e

    def make_or_update(
        self,
        stack_name: str,
        template_body: Any,
        parameter_sources: Iterable[Mapping[str, str]] = (),
        inline_parameters: Optional[str] = None,
        tag_sources: Iterable[Mapping[str, str]] = (),
        inline_tags: Optional[str] = None,
        notify_topics: Sequence[str] = (),
        disable_rollback: bool = False,
    ) -> MakeResult:
        """Create the stack if it does not exist, update it otherwise.

        A stack left behind by a failed create is deleted and created again.

        Args:
            stack_name: Name of the stack
            template_body: Template as text or bytes
            parameter_sources: Parameter mappings from files, in precedence order
            inline_parameters: `k=v,k=v` parameters overriding the files
            tag_sources: Tag mappings from files, in precedence order
            inline_tags: `k=v,k=v` tags overriding the files
            notify_topics: SNS topic ARNs for stack notifications
            disable_rollback: Keep resources of a failed create

        Returns:
            MakeResult naming the stack, the request token and the action taken
        """
        if not stack_name:
            raise InputError("missing stack name")
        if not template_body:
            raise InputError("stack has empty template")

        if isinstance(template_body, bytes):
            try:
                template_body = template_body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise TemplateError(f"can't unmarshal template: {e}") from e

        # Local view of the stack being asked for; only used to build requests
        desired = Stack(
            name=stack_name,
            disable_rollback=disable_rollback,
            topics=list(notify_topics),
            template=parse_template(template_body),
            template_body=template_body,
            tags=reconcile_tags(tag_sources, inline_tags),
        )

        parameter_sources = list(parameter_sources)
        request: Dict[str, Any] = {
            "StackName": desired.name,
            "Capabilities": list(self.capabilities),
            "Tags": tags_to_aws(desired.tags),
            "TemplateBody": desired.template_body,
        }
        if desired.topics:
            request["NotificationARNs"] = list(desired.topics)

        current = self._describe(stack_name)
        recreated = False
        if current is not None:
            if not is_failed_create(current.status):
                return self._update(
                    current, desired, request, parameter_sources, inline_parameters
                )
            self._recover(current)
            recreated = True

        desired.parameters = reconcile_parameters(
            parameter_sources, inline_parameters, desired.template.declared_parameters
        )
        logger.debug(f"create {stack_name} with params: {desired.parameters}")

        token = self.token_factory()
        create_request = {
            **request,
            "Parameters": parameters_to_aws(desired.parameters),
            "DisableRollback": desired.disable_rollback,
            "ClientRequestToken": token,
        }
        try:
            self.provider.create(create_request)
        except StackAlreadyExistsError:
            logger.info(f"stack {stack_name} was created concurrently, updating instead")
            fresh = self._describe(stack_name) or Stack(name=stack_name)
            return self._update(
                fresh, desired, request, parameter_sources, inline_parameters
            )

        action = MakeAction.RECREATED if recreated else MakeAction.CREATED
        return MakeResult(stack_name, token, action, desired.parameters, desired.tags)

    def _update(
        self,
        current: Stack,
        desired: Stack,
        request: Dict[str, Any],
        parameter_sources: List[Mapping[str, str]],
        inline_parameters: Optional[str],
    ) -> MakeResult:
        desired.parameters = reconcile_parameters(
            parameter_sources,
            inline_parameters,
            desired.template.declared_parameters,
            previous=current.parameters,
        )
        logger.debug(f"update {current.name} with params: {desired.parameters}")

        token = self.token_factory()
        update_request = {
            **request,
            "Parameters": parameters_to_aws(desired.parameters, current.parameters),
            "ClientRequestToken": token,
        }
        try:
            self.provider.update(update_request)
        except NoUpdatesError:
            logger.info(f"no update required for {current.name}")
            action = MakeAction.UNCHANGED
        else:
            action = MakeAction.UPDATED
        return MakeResult(current.name, token, action, desired.parameters, desired.tags)

    def _recover(self, current: Stack) -> None:
        """Delete a stack stuck after a failed create and wait until it is gone."""
        logger.warning(
            f"stack {current.name} is in {current.status} state, deleting before create"
        )
        try:
            self.provider.delete(current.name, self.token_factory())
        except StackOperationError as e:
            raise StackRecoveryError(current.name, current.status, f"cant delete: {e}") from e

        try:
            self.waiter.block(current.name, RenderMode.NONE)
        except WaitError as e:
            raise StackRecoveryError(
                current.name, current.status, f"cant wait on delete: {e}"
            ) from e

    def remove(self, stack_name: str) -> RemoveResult:
        """Delete a stack."""
        if not stack_name:
            raise InputError("missing stack name")
        token = self.provider.delete(stack_name, self.token_factory())
        return RemoveResult(stack_name, token)

    def await_completion(self, stack_name: str, mode: RenderMode = RenderMode.NONE) -> None:
        """Block until the stack's current operation finishes."""
        self.waiter.block(stack_name, mode)

    def resources(self, stack_name: str) -> Dict[str, Dict[str, str]]:
        """Get the resources of a stack keyed by logical id."""
        try:
            resources = self.provider.list_resources(stack_name)
        except ClientError as e:
            raise StackOperationError("describe resources of", stack_name, error_message(e)) from e

        result: Dict[str, Dict[str, str]] = {}
        for resource in resources:
            result[resource["LogicalResourceId"]] = {
                "status": resource.get("ResourceStatus", ""),
                "type": resource.get("ResourceType", ""),
                "updated": str(resource.get("Timestamp", "")),
                "pid": resource.get("PhysicalResourceId", ""),
                "reason": resource.get("ResourceStatusReason", ""),
                "stackid": resource.get("StackId", ""),
            }
        return result

    def events(self, stack_name: str, after_id: str = "", token: str = "") -> List[Event]:
        """Get events newer than an event id, oldest first.

        Args:
            stack_name: Name of the stack
            after_id: Only return events after this one; if empty, only the latest event
            token: Only return events caused by this ClientRequestToken
        """
        try:
            events = self.provider.list_events(stack_name)
        except ClientError as e:
            raise StackOperationError("describe events of", stack_name, error_message(e)) from e

        result: List[Event] = []
        for event in events:
            if event.event_id == after_id:
                break
            if token and event.token != token:
                continue
            if not after_id:
                return [event]
            result.append(event)
        result.reverse()
        return result
