"""
Tests for stack status classification.
"""

import pytest

from sfm.cloudformation.status import (
    FAILED_CREATE_STATUSES,
    IN_PROGRESS_STATUSES,
    OK_STATUSES,
    Phase,
    classify,
    is_failed_create,
)


class TestClassify:
    """Test classify."""

    @pytest.mark.parametrize(
        "status",
        ["CREATE_COMPLETE", "UPDATE_COMPLETE", "IMPORT_COMPLETE", "DELETE_COMPLETE"],
    )
    def test_success_statuses(self, status: str) -> None:
        """Test terminal success statuses are ok."""
        assert classify(status) is Phase.OK

    @pytest.mark.parametrize(
        "status",
        [
            "CREATE_IN_PROGRESS",
            "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
            "UPDATE_ROLLBACK_IN_PROGRESS",
            "ROLLBACK_IN_PROGRESS",
            "REVIEW_IN_PROGRESS",
            "IMPORT_ROLLBACK_IN_PROGRESS",
        ],
    )
    def test_in_progress_statuses(self, status: str) -> None:
        """Test non-terminal statuses are in progress."""
        assert classify(status) is Phase.IN_PROGRESS

    @pytest.mark.parametrize(
        "status",
        [
            "CREATE_FAILED",
            "ROLLBACK_COMPLETE",
            "UPDATE_ROLLBACK_COMPLETE",
            "DELETE_FAILED",
            "IMPORT_ROLLBACK_COMPLETE",
            "",
            "create_complete",
            "SOMETHING_NEW_IN_PROGRESS",
            None,
        ],
    )
    def test_everything_else_is_error(self, status) -> None:
        """Test failed, unknown and garbage statuses are errors."""
        assert classify(status) is Phase.ERROR

    def test_tables_do_not_overlap(self) -> None:
        """Test no status maps to more than one phase."""
        assert not OK_STATUSES & IN_PROGRESS_STATUSES
        assert not FAILED_CREATE_STATUSES & (OK_STATUSES | IN_PROGRESS_STATUSES)


class TestIsFailedCreate:
    """Test is_failed_create."""

    def test_failed_create_states(self) -> None:
        """Test the states that need a delete before create."""
        assert is_failed_create("CREATE_FAILED")
        assert is_failed_create("ROLLBACK_FAILED")
        assert is_failed_create("ROLLBACK_COMPLETE")

    def test_other_states(self) -> None:
        """Test update-able and unrelated states."""
        assert not is_failed_create("UPDATE_ROLLBACK_COMPLETE")
        assert not is_failed_create("CREATE_COMPLETE")
        assert not is_failed_create(None)
