"""
Tests for content request status derivation.

Covers:
- Threshold floor and quantity sum
- Forward progression pending → in_progress → delivered → approved
- Regression on rejection (delivered/approved → in_progress)
- Cancelled is terminal
- Recompute against the database records audit events
- Cancellation rules
"""

from __future__ import annotations

import pytest

from agency_portal.core.errors import Conflict
from agency_portal.models.content import ContentRequest
from agency_portal.services.lifecycle import (
    cancel_request,
    delivery_threshold,
    derive_request_status,
    ensure_accepts_uploads,
    is_regression,
    recompute_request_status,
)
from agency_portal_shared.schemas.common import RequestStatus

S = RequestStatus


# ---------------------------------------------------------------------------
# Pure derivation
# ---------------------------------------------------------------------------

class TestThreshold:
    """Delivery threshold of a request."""

    def test_sum_of_quantities(self):
        """The threshold is photos plus videos."""
        assert delivery_threshold(3, 2) == 5

    def test_floor_of_one(self):
        """A request always needs at least one upload."""
        assert delivery_threshold(0, 0) == 1

    def test_none_treated_as_zero(self):
        """Missing quantities count as zero."""
        assert delivery_threshold(None, 2) == 2


class TestDerive:
    """Status derivation from upload counts."""

    def test_pending_without_uploads(self):
        """No uploads means pending."""
        assert derive_request_status(S.PENDING, 2, 0, 0) == S.PENDING

    def test_first_upload_moves_to_in_progress(self):
        """Any upload moves a pending request to in_progress."""
        assert derive_request_status(S.PENDING, 2, 1, 0) == S.IN_PROGRESS

    def test_delivered_when_threshold_met_with_pending(self):
        """Enough uploads with some unreviewed is delivered."""
        assert derive_request_status(S.IN_PROGRESS, 2, 2, 0) == S.DELIVERED
        assert derive_request_status(S.IN_PROGRESS, 2, 1, 1) == S.DELIVERED

    def test_approved_when_enough_approved_and_nothing_pending(self):
        """Enough approvals with nothing pending is approved."""
        assert derive_request_status(S.DELIVERED, 2, 0, 2) == S.APPROVED

    def test_not_approved_while_reviews_pending(self):
        """Pending reviews hold off approval."""
        assert derive_request_status(S.DELIVERED, 2, 1, 2) == S.DELIVERED

    def test_rejection_regresses_delivered(self):
        """A rejection that leaves too few uploads moves delivered back to in_progress."""
        # one approved, one rejected, nothing pending, target 2
        assert derive_request_status(S.DELIVERED, 2, 0, 1, rejected=1) == S.IN_PROGRESS

    def test_reject_after_approved_regresses(self):
        """Approved requests regress when approvals fall short."""
        assert derive_request_status(S.APPROVED, 3, 0, 2, rejected=1) == S.IN_PROGRESS

    def test_only_rejections_stay_in_progress(self):
        """Rejected uploads alone still count as started."""
        assert derive_request_status(S.PENDING, 1, 0, 0, rejected=2) == S.IN_PROGRESS

    def test_pending_never_re_entered(self):
        """Started requests never go back to pending."""
        assert derive_request_status(S.IN_PROGRESS, 2, 0, 0) == S.IN_PROGRESS

    def test_cancelled_is_terminal(self):
        """Cancelled requests stay cancelled."""
        assert derive_request_status(S.CANCELLED, 1, 0, 5) == S.CANCELLED

    def test_zero_quantity_request_needs_one(self):
        """A zero-quantity request is delivered by one upload."""
        threshold = delivery_threshold(0, 0)
        assert derive_request_status(S.PENDING, threshold, 1, 0) == S.DELIVERED
        assert derive_request_status(S.DELIVERED, threshold, 0, 1) == S.APPROVED


class TestRegression:
    """Which status changes count as regressions."""

    def test_backwards_is_regression(self):
        """Moving back down the order is a regression."""
        assert is_regression(S.APPROVED, S.IN_PROGRESS)
        assert is_regression(S.DELIVERED, S.IN_PROGRESS)

    def test_forwards_is_not(self):
        """Moving forward is not a regression."""
        assert not is_regression(S.IN_PROGRESS, S.DELIVERED)

    def test_cancellation_is_not(self):
        """Cancelling is not a regression."""
        assert not is_regression(S.DELIVERED, S.CANCELLED)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestRecompute:
    """Recomputing and persisting request status."""

    async def test_progression_and_audit(self, seed, session, creator):
        """Status changes are saved with an audit event."""
        request = await seed.request(creator, quantity_photo=2)
        await seed.upload(creator, request)
        await seed.upload(creator, request)

        updated = await recompute_request_status(session, request.id)
        await session.commit()

        assert updated.status == S.DELIVERED.value
        events = await seed.events(creator.agency_id, "content_request.status_changed")
        assert len(events) == 1
        assert events[0].payload["from"] == "pending"
        assert events[0].payload["to"] == "delivered"

    async def test_no_change_no_event(self, seed, session, creator):
        """An unchanged status records nothing."""
        request = await seed.request(creator)
        updated = await recompute_request_status(session, request.id)
        await session.commit()

        assert updated.status == S.PENDING.value
        assert await seed.events(creator.agency_id) == []

    async def test_regression_recorded(self, seed, session, creator):
        """Regressions are flagged in the audit payload."""
        request = await seed.request(creator, quantity_photo=2, status=S.DELIVERED.value)
        await seed.upload(creator, request, status="approved")
        await seed.upload(creator, request, status="rejected", rejection_note="Blurry")

        updated = await recompute_request_status(session, request.id)
        await session.commit()

        assert updated.status == S.IN_PROGRESS.value
        regressed = await seed.events(creator.agency_id, "content_request.regressed")
        assert len(regressed) == 1
        assert regressed[0].payload["from"] == "delivered"

    async def test_cancelled_untouched(self, seed, session, creator):
        """Recompute leaves cancelled requests alone."""
        request = await seed.request(creator, quantity_photo=1, status=S.CANCELLED.value)
        await seed.upload(creator, request, status="approved")

        updated = await recompute_request_status(session, request.id)
        assert updated.status == S.CANCELLED.value


class TestCancel:
    """Cancellation and closed-request guards."""

    @pytest.mark.parametrize("status", [S.PENDING, S.IN_PROGRESS, S.DELIVERED])
    async def test_cancellable(self, seed, session, creator, owner, status):
        """Open requests cancel with an audit event."""
        request = await seed.request(creator, status=status.value)
        request = await session.get(ContentRequest, request.id)

        await cancel_request(session, request, owner.id)
        await session.commit()

        stored = await seed.get(ContentRequest, request.id)
        assert stored.status == S.CANCELLED.value
        assert stored.cancelled_at is not None

    @pytest.mark.parametrize("status", [S.APPROVED, S.CANCELLED])
    async def test_closed_requests_refuse(self, seed, session, creator, owner, status):
        """Approved and cancelled requests cannot be cancelled."""
        request = await seed.request(creator, status=status.value)
        request = await session.get(ContentRequest, request.id)

        with pytest.raises(Conflict):
            await cancel_request(session, request, owner.id)

    @pytest.mark.parametrize("status", [S.APPROVED, S.CANCELLED])
    def test_closed_requests_refuse_uploads(self, status):
        """Approved and cancelled requests take no uploads."""
        with pytest.raises(Conflict):
            ensure_accepts_uploads(ContentRequest(title="x", status=status.value))
