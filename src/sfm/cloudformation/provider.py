"""
Thin wrapper around the CloudFormation client.

Retries with backoff are configured on the botocore client and are not
repeated here.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..errors import NoUpdatesError, StackAlreadyExistsError, StackOperationError
from .models import Event, Stack

logger = logging.getLogger(__name__)

NO_UPDATES_MESSAGE = "No updates are to be performed."
MAX_LIST_PAGES = 200


def error_code(error: ClientError) -> str:
    """Get the error code of a ClientError."""
    return str(error.response.get("Error", {}).get("Code", ""))


def error_message(error: ClientError) -> str:
    """Get the error message of a ClientError."""
    return str(error.response.get("Error", {}).get("Message", "")) or str(error)


def is_no_updates_error(error: Exception) -> bool:
    """Check if an UpdateStack failure means the stack is already up to date.

    CloudFormation signals this only through the message text.
    """
    if isinstance(error, ClientError):
        return error_message(error).strip().endswith(NO_UPDATES_MESSAGE)
    return str(error).strip().endswith(NO_UPDATES_MESSAGE)


def is_not_found_error(error: ClientError) -> bool:
    """Check if a DescribeStacks failure means the stack does not exist."""
    return "does not exist" in str(error)


def is_already_exists_error(error: ClientError) -> bool:
    """Check if a CreateStack failure means the stack already exists."""
    return error_code(error) == "AlreadyExistsException"


class StackProvider:
    """CloudFormation operations used by the stack manager."""

    def __init__(
        self,
        session: Optional[boto3.Session] = None,
        client_config: Optional[Config] = None,
    ):
        """
        Initialize the provider.

        Args:
            session: boto3 session carrying region and credentials
            client_config: botocore config, usually holding the retry policy
        """
        self.session = session or boto3.Session()
        self.cloudformation = self.session.client(
            "cloudformation", config=client_config
        )

    def describe(self, stack_name: str) -> Optional[Stack]:
        """Describe a stack, returning None when it does not exist."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_not_found_error(e):
                return None
            raise
        stacks = response.get("Stacks", [])
        if not stacks:
            return None
        return Stack.from_aws(stacks[0])

    def create(self, request: Dict[str, Any]) -> str:
        """Submit a CreateStack request and return its request token."""
        try:
            self.cloudformation.create_stack(**request)
        except ClientError as e:
            if is_already_exists_error(e):
                raise StackAlreadyExistsError(error_message(e)) from e
            raise StackOperationError("create", request["StackName"], error_message(e)) from e
        return request["ClientRequestToken"]

    def update(self, request: Dict[str, Any]) -> str:
        """Submit an UpdateStack request and return its request token."""
        try:
            self.cloudformation.update_stack(**request)
        except ClientError as e:
            if is_no_updates_error(e):
                raise NoUpdatesError(error_message(e)) from e
            raise StackOperationError("update", request["StackName"], error_message(e)) from e
        return request["ClientRequestToken"]

    def delete(self, stack_name: str, token: str) -> str:
        """Submit a DeleteStack request and return its request token."""
        try:
            self.cloudformation.delete_stack(
                StackName=stack_name, ClientRequestToken=token
            )
        except ClientError as e:
            raise StackOperationError("delete", stack_name, error_message(e)) from e
        return token

    def list_events(self, stack_name: str) -> List[Event]:
        """Get the most recent page of stack events, newest first."""
        response = self.cloudformation.describe_stack_events(StackName=stack_name)
        return [Event.from_aws(e) for e in response.get("StackEvents", [])]

    def list_stacks(self) -> Iterator[Stack]:
        """Iterate over every stack in the region."""
        paginator = self.cloudformation.get_paginator("describe_stacks")
        for page_number, page in enumerate(paginator.paginate(), start=1):
            for stack in page.get("Stacks", []):
                yield Stack.from_aws(stack)
            if page_number >= MAX_LIST_PAGES:
                logger.warning(f"stopped listing stacks after {MAX_LIST_PAGES} pages")
                break

    def list_resources(self, stack_name: str) -> List[Dict[str, Any]]:
        """Get the resources of a stack."""
        response = self.cloudformation.describe_stack_resources(StackName=stack_name)
        return list(response.get("StackResources", []))
