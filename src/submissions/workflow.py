# src/submissions/workflow.py — v2
"""Submission review workflow: submit, approve, reject, request info, resubmit.

Approval promotes a submission into the catalog in one transaction:
insert-or-reuse the device on (brand, model), add components only when the
device is new, then mark the submission approved with the device linked.
Auto-approval takes the same path but never marks the device verified.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from scavy.catalog.store import CatalogStore
from scavy.core.models import IdentificationResult
from scavy.submissions.derive import derive_brand_model, derive_device
from scavy.submissions.models import (
    ApprovalOutcome,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionType,
)
from scavy.submissions.state import ensure_transition
from scavy.submissions.store import SubmissionStore

logger = logging.getLogger(__name__)

AUTO_REVIEWER = "auto"


class SubmissionWorkflow:
    """State machine over submissions, backed by the catalog store."""

    def __init__(
        self,
        store: SubmissionStore,
        catalog: CatalogStore,
        auto_approve: bool = False,
    ) -> None:
        if store.database is not catalog.database:
            raise ValueError("Submission and catalog stores must share one database")
        self._store = store
        self._catalog = catalog
        self._db = store.database
        self._auto_approve = auto_approve

    @property
    def store(self) -> SubmissionStore:
        return self._store

    async def submit(
        self,
        result: IdentificationResult,
        user_id: str | None = None,
        submission_type: SubmissionType = SubmissionType.NEW_DEVICE,
        fingerprint: str | None = None,
        brand: str | None = None,
        model: str | None = None,
        user_notes: str | None = None,
        matched_device_id: int | None = None,
    ) -> SubmissionRecord:
        """Create a pending submission, auto-approving it when configured."""
        derived_brand, derived_model = derive_brand_model(brand, model)
        record = await self._store.create(SubmissionRecord(
            user_id=user_id,
            raw_result=result,
            submission_type=submission_type,
            fingerprint=fingerprint,
            brand=derived_brand,
            model=derived_model,
            user_notes=user_notes,
            matched_device_id=matched_device_id,
        ))
        logger.info(
            "Submission %s created (%s, %r)", record.id, submission_type.value, result.parent_object
        )
        if self._auto_approve and submission_type == SubmissionType.NEW_DEVICE and result.items:
            outcome = await self.approve(record.id, reviewer=AUTO_REVIEWER, auto=True)
            return outcome.submission
        return record

    async def approve(
        self,
        submission_id: int,
        reviewer: str,
        notes: str | None = None,
        auto: bool = False,
        brand: str | None = None,
        model: str | None = None,
    ) -> ApprovalOutcome:
        """Approve and promote into the catalog atomically.

        ``brand``/``model`` given by the reviewer replace the submitted ones.

        Raises:
            SubmissionNotFoundError: Unknown id.
            InvalidTransitionError: Submission is already approved or rejected.
        """
        with self._db.transaction() as conn:
            submission = self._store.get_tx(conn, submission_id)
            ensure_transition(submission.status, SubmissionStatus.APPROVED)
            identity: dict[str, str] = {}
            reviewed_brand, reviewed_model = derive_brand_model(brand, model)
            if reviewed_brand:
                identity["brand"] = reviewed_brand
            if reviewed_model:
                identity["model"] = reviewed_model
            if identity:
                submission = submission.model_copy(update=identity)

            created = False
            added = 0
            if submission.submission_type == SubmissionType.DUPLICATE_REPORT:
                device_id = submission.matched_device_id
            else:
                device = derive_device(submission, verified=not auto)
                device_id, created = self._catalog.insert_device(conn, device)
                if created:
                    added = self._catalog.insert_components(conn, device_id, device.components)
                elif not auto:
                    conn.execute(
                        "UPDATE catalog_devices SET verified = 1 WHERE id = ?", (device_id,)
                    )

            self._store.update_tx(
                conn,
                submission_id,
                status=SubmissionStatus.APPROVED,
                reviewed_by=reviewer,
                reviewed_at=datetime.now(timezone.utc),
                review_notes=notes,
                auto_approved=auto,
                matched_device_id=device_id,
                **identity,
            )
            approved = self._store.get_tx(conn, submission_id)

        logger.info(
            "Submission %s approved by %s → device %s (%s, %d components)",
            submission_id, reviewer, device_id, "new" if created else "existing", added,
        )
        return ApprovalOutcome(
            submission=approved, device_id=device_id, device_created=created, components_added=added
        )

    async def reject(self, submission_id: int, reason: str, reviewer: str | None = None) -> SubmissionRecord:
        """Reject with a reason. Touches only status and review fields."""
        return await self._review(submission_id, SubmissionStatus.REJECTED, reason, reviewer)

    async def request_more_info(
        self, submission_id: int, notes: str, reviewer: str | None = None
    ) -> SubmissionRecord:
        return await self._review(submission_id, SubmissionStatus.NEEDS_MORE_INFO, notes, reviewer)

    async def resubmit(
        self,
        submission_id: int,
        user_notes: str | None = None,
        result: IdentificationResult | None = None,
    ) -> SubmissionRecord:
        """Submitter answers a needs_more_info request; back to pending."""
        with self._db.transaction() as conn:
            submission = self._store.get_tx(conn, submission_id)
            ensure_transition(submission.status, SubmissionStatus.PENDING)
            fields: dict[str, object] = {"status": SubmissionStatus.PENDING}
            if user_notes is not None:
                fields["user_notes"] = user_notes
            if result is not None:
                fields["raw_result"] = result
            self._store.update_tx(conn, submission_id, **fields)
            return self._store.get_tx(conn, submission_id)

    async def _review(
        self,
        submission_id: int,
        target: SubmissionStatus,
        notes: str,
        reviewer: str | None,
    ) -> SubmissionRecord:
        with self._db.transaction() as conn:
            submission = self._store.get_tx(conn, submission_id)
            ensure_transition(submission.status, target)
            self._store.update_tx(
                conn,
                submission_id,
                status=target,
                review_notes=notes,
                reviewed_by=reviewer,
                reviewed_at=datetime.now(timezone.utc),
            )
            updated = self._store.get_tx(conn, submission_id)
        logger.info("Submission %s → %s", submission_id, target.value)
        return updated
