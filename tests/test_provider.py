"""
Tests for the CloudFormation provider.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from sfm.cloudformation.provider import StackProvider, is_no_updates_error
from sfm.errors import NoUpdatesError, StackAlreadyExistsError, StackOperationError

TEMPLATE = """
AWSTemplateFormatVersion: "2010-09-09"
Resources:
  Bucket:
    Type: AWS::S3::Bucket
"""


def client_error(code: str, message: str, operation: str = "UpdateStack") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class TestIsNoUpdatesError:
    """Test is_no_updates_error."""

    def test_matches_message(self) -> None:
        """Test the no-op update message is recognized."""
        assert is_no_updates_error(
            client_error("ValidationError", "No updates are to be performed.")
        )

    def test_other_validation_errors(self) -> None:
        """Test other validation errors are not no-ops."""
        assert not is_no_updates_error(
            client_error("ValidationError", "Template format error")
        )

    def test_plain_exception(self) -> None:
        """Test errors that are not ClientErrors."""
        assert is_no_updates_error(Exception("x: No updates are to be performed."))


class TestStackProvider:
    """Test StackProvider against a mocked client."""

    def create_provider(self) -> StackProvider:
        """Create a provider with a mocked CloudFormation client."""
        provider = StackProvider(session=Mock())
        provider.cloudformation = Mock()
        return provider

    def test_describe(self) -> None:
        """Test describe converts the stack."""
        provider = self.create_provider()
        provider.cloudformation.describe_stacks.return_value = {
            "Stacks": [
                {
                    "StackName": "demo",
                    "StackStatus": "UPDATE_COMPLETE",
                    "CreationTime": datetime(2024, 1, 1, tzinfo=timezone.utc),
                    "Parameters": [{"ParameterKey": "Env", "ParameterValue": "prod"}],
                    "Tags": [{"Key": "team", "Value": "a"}],
                    "Outputs": [{"OutputKey": "Url", "OutputValue": "https://x"}],
                    "DisableRollback": True,
                }
            ]
        }

        stack = provider.describe("demo")

        assert stack.name == "demo"
        assert stack.status == "UPDATE_COMPLETE"
        assert stack.parameters == {"Env": "prod"}
        assert stack.tags == {"team": "a"}
        assert stack.outputs == {"Url": "https://x"}
        assert stack.disable_rollback is True
        provider.cloudformation.describe_stacks.assert_called_once_with(StackName="demo")

    def test_describe_missing(self) -> None:
        """Test a missing stack gives None."""
        provider = self.create_provider()
        provider.cloudformation.describe_stacks.side_effect = client_error(
            "ValidationError", "Stack with id demo does not exist", "DescribeStacks"
        )
        assert provider.describe("demo") is None

    def test_describe_other_error(self) -> None:
        """Test other describe errors propagate."""
        provider = self.create_provider()
        provider.cloudformation.describe_stacks.side_effect = client_error(
            "AccessDenied", "not authorized", "DescribeStacks"
        )
        with pytest.raises(ClientError):
            provider.describe("demo")

    def test_create_returns_token(self) -> None:
        """Test create passes the request through."""
        provider = self.create_provider()
        request = {"StackName": "demo", "TemplateBody": "x", "ClientRequestToken": "t-1"}

        assert provider.create(request) == "t-1"
        provider.cloudformation.create_stack.assert_called_once_with(**request)

    def test_create_already_exists(self) -> None:
        """Test AlreadyExistsException is translated."""
        provider = self.create_provider()
        provider.cloudformation.create_stack.side_effect = client_error(
            "AlreadyExistsException", "Stack [demo] already exists", "CreateStack"
        )
        with pytest.raises(StackAlreadyExistsError):
            provider.create({"StackName": "demo", "ClientRequestToken": "t"})

    def test_create_failure(self) -> None:
        """Test other create errors carry the remote message."""
        provider = self.create_provider()
        provider.cloudformation.create_stack.side_effect = client_error(
            "ValidationError", "Template format error", "CreateStack"
        )
        with pytest.raises(StackOperationError, match="Template format error") as exc:
            provider.create({"StackName": "demo", "ClientRequestToken": "t"})
        assert exc.value.operation == "create"

    def test_update_no_updates(self) -> None:
        """Test the no-op update error is translated."""
        provider = self.create_provider()
        provider.cloudformation.update_stack.side_effect = client_error(
            "ValidationError", "No updates are to be performed."
        )
        with pytest.raises(NoUpdatesError):
            provider.update({"StackName": "demo", "ClientRequestToken": "t"})

    def test_update_failure(self) -> None:
        """Test other update errors."""
        provider = self.create_provider()
        provider.cloudformation.update_stack.side_effect = client_error(
            "ValidationError", "Stack is in UPDATE_IN_PROGRESS state"
        )
        with pytest.raises(StackOperationError, match="UPDATE_IN_PROGRESS"):
            provider.update({"StackName": "demo", "ClientRequestToken": "t"})

    def test_delete(self) -> None:
        """Test delete sends the token."""
        provider = self.create_provider()
        assert provider.delete("demo", "t-2") == "t-2"
        provider.cloudformation.delete_stack.assert_called_once_with(
            StackName="demo", ClientRequestToken="t-2"
        )

    def test_list_events(self) -> None:
        """Test events keep the API order."""
        provider = self.create_provider()
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        provider.cloudformation.describe_stack_events.return_value = {
            "StackEvents": [
                {"EventId": "2", "LogicalResourceId": "Bucket", "ResourceStatus": "CREATE_COMPLETE", "Timestamp": now},
                {"EventId": "1", "ResourceStatus": "CREATE_IN_PROGRESS", "Timestamp": now, "ClientRequestToken": "t"},
            ]
        }

        events = provider.list_events("demo")

        assert [e.event_id for e in events] == ["2", "1"]
        assert events[0].resource == "Bucket"
        assert events[1].resource == ""
        assert events[1].token == "t"

    def test_list_stacks_paginates(self) -> None:
        """Test every page is read."""
        provider = self.create_provider()
        provider.cloudformation.get_paginator.return_value.paginate.return_value = [
            {"Stacks": [{"StackName": "a", "StackStatus": "CREATE_COMPLETE"}]},
            {"Stacks": [{"StackName": "b", "StackStatus": "CREATE_FAILED"}]},
        ]

        names = [s.name for s in provider.list_stacks()]

        assert names == ["a", "b"]
        provider.cloudformation.get_paginator.assert_called_once_with("describe_stacks")


class TestStackProviderMoto:
    """Smoke tests against moto."""

    @pytest.fixture(autouse=True)
    def aws_credentials(self, monkeypatch) -> None:
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")

    def test_create_and_describe(self) -> None:
        """Test a stack round trip."""
        with mock_aws():
            provider = StackProvider(session=boto3.Session(region_name="us-east-1"))

            assert provider.describe("moto-demo") is None

            provider.create(
                {
                    "StackName": "moto-demo",
                    "TemplateBody": TEMPLATE,
                    "ClientRequestToken": "token-1",
                }
            )
            stack = provider.describe("moto-demo")

            assert stack.name == "moto-demo"
            assert stack.status == "CREATE_COMPLETE"
            assert [s.name for s in provider.list_stacks()] == ["moto-demo"]
