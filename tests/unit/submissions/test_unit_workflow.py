# tests/unit/submissions/test_unit_workflow.py — v2
"""Tests for submissions/workflow.py — review transitions and catalog promotion."""

from __future__ import annotations

import asyncio

import pytest

from scavy.catalog.store import CatalogStore
from scavy.core.errors import InvalidTransitionError, SubmissionNotFoundError
from scavy.core.models import IdentificationResult
from scavy.storage.database import Database
from scavy.submissions.models import SubmissionStatus, SubmissionType
from scavy.submissions.store import SubmissionStore
from scavy.submissions.workflow import AUTO_REVIEWER, SubmissionWorkflow


@pytest.fixture
def catalog(database):
    return CatalogStore(database)


@pytest.fixture
def workflow(database, catalog):
    return SubmissionWorkflow(SubmissionStore(database), catalog)


@pytest.fixture
def result(identification_factory) -> IdentificationResult:
    return IdentificationResult.model_validate_json(identification_factory(n_items=3))


class TestSubmit:
    @pytest.mark.asyncio
    async def test_creates_pending(self, workflow, result):
        record = await workflow.submit(result, user_id="u1", fingerprint="fp")

        assert record.status == SubmissionStatus.PENDING
        assert record.brand is None
        assert record.fingerprint == "fp"

    @pytest.mark.asyncio
    async def test_explicit_brand_recorded(self, workflow, result):
        record = await workflow.submit(result, brand=" Sony ", model="WH-1000XM4")
        assert (record.brand, record.model) == ("Sony", "WH-1000XM4")

    @pytest.mark.asyncio
    async def test_auto_approve_creates_unverified_device(self, database, catalog, result):
        workflow = SubmissionWorkflow(SubmissionStore(database), catalog, auto_approve=True)

        record = await workflow.submit(result)

        assert record.status == SubmissionStatus.APPROVED
        assert record.auto_approved is True
        assert record.reviewed_by == AUTO_REVIEWER
        device = await catalog.get_device(record.matched_device_id)
        assert device.verified is False
        assert len(device.components) == 3

    @pytest.mark.asyncio
    async def test_auto_approve_skips_empty_results(self, database, catalog):
        workflow = SubmissionWorkflow(SubmissionStore(database), catalog, auto_approve=True)
        record = await workflow.submit(IdentificationResult(parent_object="Blurry thing"))
        assert record.status == SubmissionStatus.PENDING

    def test_requires_shared_database(self, database):
        other = Database(":memory:")
        try:
            with pytest.raises(ValueError):
                SubmissionWorkflow(SubmissionStore(database), CatalogStore(other))
        finally:
            other.close()


class TestApprove:
    @pytest.mark.asyncio
    async def test_promotes_into_catalog(self, workflow, catalog, result):
        record = await workflow.submit(result)

        outcome = await workflow.approve(record.id, reviewer="mod1", notes="looks right")

        assert outcome.device_created is True
        assert outcome.components_added == 3
        assert outcome.submission.status == SubmissionStatus.APPROVED
        assert outcome.submission.reviewed_by == "mod1"
        assert outcome.submission.matched_device_id == outcome.device_id
        device = await catalog.get_device(outcome.device_id)
        assert device.verified is True
        assert device.brand is None
        assert device.category == result.items[0].category

    @pytest.mark.asyncio
    async def test_reviewer_sets_brand_and_model(self, workflow, catalog, result):
        record = await workflow.submit(result)

        outcome = await workflow.approve(record.id, reviewer="mod1", brand="Sony", model="WH-1000XM4")

        assert (outcome.submission.brand, outcome.submission.model) == ("Sony", "WH-1000XM4")
        device = await catalog.get_device(outcome.device_id)
        assert (device.brand, device.model) == ("Sony", "WH-1000XM4")

    @pytest.mark.asyncio
    async def test_second_approval_rejected(self, workflow, catalog, result):
        record = await workflow.submit(result)
        await workflow.approve(record.id, reviewer="mod1")

        with pytest.raises(InvalidTransitionError):
            await workflow.approve(record.id, reviewer="mod2")
        assert await catalog.count_devices() == 1

    @pytest.mark.asyncio
    async def test_same_device_reused(self, workflow, catalog, result):
        first = await workflow.submit(result)
        second = await workflow.submit(result)

        a = await workflow.approve(first.id, reviewer="mod1")
        b = await workflow.approve(second.id, reviewer="mod1")

        assert b.device_created is False
        assert b.components_added == 0
        assert a.device_id == b.device_id
        assert len(await catalog.get_components(a.device_id)) == 3

    @pytest.mark.asyncio
    async def test_concurrent_approvals_promote_once(self, workflow, catalog, result):
        record = await workflow.submit(result)

        outcomes = await asyncio.gather(
            workflow.approve(record.id, reviewer="mod1"),
            workflow.approve(record.id, reviewer="mod2"),
            return_exceptions=True,
        )

        assert sum(isinstance(o, InvalidTransitionError) for o in outcomes) == 1
        assert await catalog.count_devices() == 1

    @pytest.mark.asyncio
    async def test_duplicate_report_links_existing(self, workflow, catalog, sample_device, result):
        device_id, _ = await catalog.add_device(sample_device)
        record = await workflow.submit(
            result, submission_type=SubmissionType.DUPLICATE_REPORT, matched_device_id=device_id
        )

        outcome = await workflow.approve(record.id, reviewer="mod1")

        assert outcome.device_id == device_id
        assert outcome.device_created is False
        assert await catalog.count_devices() == 1

    @pytest.mark.asyncio
    async def test_unknown_submission(self, workflow):
        with pytest.raises(SubmissionNotFoundError):
            await workflow.approve(999, reviewer="mod1")


class TestRejectAndMoreInfo:
    @pytest.mark.asyncio
    async def test_reject_is_terminal(self, workflow, catalog, result):
        record = await workflow.submit(result)

        rejected = await workflow.reject(record.id, "not a real device", reviewer="mod1")
        assert rejected.status == SubmissionStatus.REJECTED
        assert rejected.review_notes == "not a real device"
        assert rejected.reviewed_at is not None

        with pytest.raises(InvalidTransitionError):
            await workflow.approve(record.id, reviewer="mod1")
        assert await catalog.count_devices() == 0

    @pytest.mark.asyncio
    async def test_more_info_round_trip(self, workflow, result):
        record = await workflow.submit(result)

        asked = await workflow.request_more_info(record.id, "Which model is it?", reviewer="mod1")
        assert asked.status == SubmissionStatus.NEEDS_MORE_INFO

        resubmitted = await workflow.resubmit(record.id, user_notes="It is the XM4")
        assert resubmitted.status == SubmissionStatus.PENDING
        assert resubmitted.user_notes == "It is the XM4"

        outcome = await workflow.approve(record.id, reviewer="mod1")
        assert outcome.submission.status == SubmissionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_resubmit_requires_more_info_state(self, workflow, result):
        record = await workflow.submit(result)
        await workflow.reject(record.id, "spam")
        with pytest.raises(InvalidTransitionError):
            await workflow.resubmit(record.id, user_notes="please")
