"""Manual review queue API endpoints.

Provides REST endpoints for listing, claiming and resolving review items.
Domain failures propagate to the handlers registered in ``rxmatch.api``.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..review.models import (
    AnnotateRequest,
    ApproveRequest,
    AssignRequest,
    EnqueueRequest,
    RejectRequest,
    ReprioritizeRequest,
    ReviewItem,
    ReviewItemDetails,
    ReviewItemFilter,
    ReviewItemListResponse,
    ReviewPriority,
    ReviewStatus,
)
from ..review.queue import ReviewQueue, get_review_queue
from ..review.selection import sort_queue
from . import APIResponse

router = APIRouter(prefix="/review-queue", tags=["review-queue"])


@router.get("", response_model=APIResponse[ReviewItemListResponse])
async def list_review_items(
    status: ReviewStatus | None = Query(default=None),
    priority: ReviewPriority | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    unassigned_only: bool = Query(default=False),
    queue: ReviewQueue = Depends(get_review_queue),
):
    """List review items, highest priority and oldest first."""
    items = await queue.list_items(
        ReviewItemFilter(
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            unassigned_only=unassigned_only,
        )
    )
    ordered = sort_queue(items)
    return APIResponse(data=ReviewItemListResponse(items=ordered, count=len(ordered)))


@router.post("", response_model=APIResponse[ReviewItem], status_code=201)
async def enqueue_review_item(
    request: EnqueueRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Queue a calculation for manual review."""
    item = await queue.enqueue(request.calculation_id, request.priority)
    return APIResponse(data=item, message="Review item created")


@router.get("/next", response_model=APIResponse[ReviewItem])
async def get_next_review_item(queue: ReviewQueue = Depends(get_review_queue)):
    """Get the next unassigned, pending item."""
    item = await queue.select_next()
    if item is None:
        return APIResponse(data=None, message="No review items available")
    return APIResponse(data=item)


@router.get("/{item_id}", response_model=APIResponse[ReviewItemDetails])
async def get_review_item(
    item_id: UUID,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Get a review item with its calculation record."""
    return APIResponse(data=await queue.get_details(item_id))


@router.post("/{item_id}/assign", response_model=APIResponse[ReviewItem])
async def assign_review_item(
    item_id: UUID,
    request: AssignRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Assign a pending item to a reviewer."""
    item = await queue.assign(item_id, request.reviewer_id)
    return APIResponse(data=item, message="Review item assigned successfully")


@router.post("/{item_id}/approve", response_model=APIResponse[ReviewItem])
async def approve_review_item(
    item_id: UUID,
    request: ApproveRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Approve the calculation behind a review item."""
    item = await queue.approve(item_id, request.reviewer_id, request.notes)
    return APIResponse(data=item, message="Calculation approved successfully")


@router.post("/{item_id}/reject", response_model=APIResponse[ReviewItem])
async def reject_review_item(
    item_id: UUID,
    request: RejectRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Reject the calculation behind a review item."""
    item = await queue.reject(item_id, request.reviewer_id, request.reason, request.notes)
    return APIResponse(data=item, message="Calculation rejected successfully")


@router.post("/{item_id}/notes", response_model=APIResponse[ReviewItem])
async def add_review_notes(
    item_id: UUID,
    request: AnnotateRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Append a timestamped note to a review item."""
    item = await queue.annotate(item_id, request.note, request.reviewer_id)
    return APIResponse(data=item, message="Notes added successfully")


@router.post("/{item_id}/priority", response_model=APIResponse[ReviewItem])
async def change_review_priority(
    item_id: UUID,
    request: ReprioritizeRequest,
    queue: ReviewQueue = Depends(get_review_queue),
):
    """Change the priority of an open review item."""
    item = await queue.reprioritize(item_id, request.priority, request.reviewer_id)
    return APIResponse(data=item, message="Priority updated")
