"""Unit tests for review queue models and errors."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from rxmatch.review.errors import (
    ConflictError,
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    ReviewQueueError,
)
from rxmatch.review.models import (
    AnnotateRequest,
    AuditMetadata,
    CalculationRecord,
    ReviewItem,
    ReviewItemFilter,
    ReviewPriority,
    ReviewStatus,
)


class TestReviewPriority:
    """Tests for parsing priorities."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("high", ReviewPriority.HIGH),
            ("HIGH", ReviewPriority.HIGH),
            (" Medium ", ReviewPriority.MEDIUM),
            ("low", ReviewPriority.LOW),
            (ReviewPriority.LOW, ReviewPriority.LOW),
        ],
    )
    def test_parse(self, raw, expected):
        assert ReviewPriority.parse(raw) == expected

    @pytest.mark.parametrize("raw", ["urgent", "", "1"])
    def test_parse_unknown(self, raw):
        with pytest.raises(InvalidInputError) as exc_info:
            ReviewPriority.parse(raw)
        assert exc_info.value.field == "priority"


class TestReviewItem:
    """Tests for the review item entity."""

    def test_defaults(self):
        item = ReviewItem(calculation_id=uuid4())

        assert item.status == ReviewStatus.PENDING
        assert item.priority == ReviewPriority.MEDIUM
        assert item.assigned_to is None
        assert item.notes == ""
        assert item.is_open

    def test_completed_is_not_open(self):
        item = ReviewItem(calculation_id=uuid4(), status=ReviewStatus.COMPLETED)
        assert not item.is_open

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            CalculationRecord(confidence_score=1.5)


class TestReviewItemFilter:
    """Tests for list filters."""

    def test_empty_filter_matches_everything(self):
        item = ReviewItem(calculation_id=uuid4(), status=ReviewStatus.COMPLETED)
        assert ReviewItemFilter().matches(item)

    def test_pending_unassigned(self):
        item_filter = ReviewItemFilter(status=ReviewStatus.PENDING, unassigned_only=True)

        assert item_filter.matches(ReviewItem(calculation_id=uuid4()))
        assert not item_filter.matches(
            ReviewItem(calculation_id=uuid4(), assigned_to="pharm-1")
        )
        assert not item_filter.matches(
            ReviewItem(
                calculation_id=uuid4(),
                status=ReviewStatus.IN_REVIEW,
                assigned_to="pharm-1",
            )
        )

    def test_open_for_calculation(self):
        calculation_id = uuid4()
        item_filter = ReviewItemFilter(calculation_id=calculation_id, open_only=True)

        assert item_filter.matches(ReviewItem(calculation_id=calculation_id))
        assert not item_filter.matches(ReviewItem(calculation_id=uuid4()))
        assert not item_filter.matches(
            ReviewItem(calculation_id=calculation_id, status=ReviewStatus.COMPLETED)
        )

    def test_priority_and_assignee(self):
        item = ReviewItem(
            calculation_id=uuid4(),
            priority=ReviewPriority.HIGH,
            status=ReviewStatus.IN_REVIEW,
            assigned_to="pharm-2",
        )

        assert ReviewItemFilter(priority=ReviewPriority.HIGH, assigned_to="pharm-2").matches(item)
        assert not ReviewItemFilter(assigned_to="pharm-1").matches(item)
        assert not ReviewItemFilter(priority=ReviewPriority.LOW).matches(item)


class TestRequestModels:
    """Tests for API request models."""

    def test_annotate_accepts_notes_alias(self):
        assert AnnotateRequest.model_validate({"notes": "x"}).note == "x"
        assert AnnotateRequest.model_validate({"note": "y"}).note == "y"

    def test_audit_metadata_is_closed(self):
        with pytest.raises(ValidationError):
            AuditMetadata(review_item_id=uuid4(), unexpected="value")


class TestErrors:
    """Tests for the error taxonomy."""

    def test_not_found_message(self):
        item_id = uuid4()
        error = NotFoundError("Review item", item_id)
        assert error.message == f"Review item not found: {item_id}"
        assert error.error_code == "NOT_FOUND"

    def test_duplicate_mentions_existing_item(self):
        existing = uuid4()
        error = DuplicateError(uuid4(), existing)
        assert str(existing) in error.message

    @pytest.mark.parametrize(
        "error",
        [
            ConflictError("busy"),
            DuplicateError(uuid4()),
            InvalidInputError("bad", field="note"),
            NotFoundError("Review item", "x"),
        ],
    )
    def test_all_are_review_queue_errors(self, error):
        assert isinstance(error, ReviewQueueError)
