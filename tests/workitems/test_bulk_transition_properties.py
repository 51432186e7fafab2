"""Property-based tests for bulk transitions.

This module uses Hypothesis to verify that:
- updated_count + rejected_count equals the number of distinct ids
- Items already in the target status, terminal items and unknown ids are
  rejected, and only eligible items change
- Items of another tenant are never touched
- Concurrent overlapping bulk transitions never move an item twice

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import asyncio
from typing import Dict, List
from uuid import UUID, uuid4

from hypothesis import given, settings, strategies as st

from src.workitems.service import BulkTransitionCommand, WorkItemService
from src.workitems.state import TERMINAL_STATUSES, WorkItemStatus

from tests.workitems.fakes import RecordingWorkItemRepository, StepClock, run_async


# =============================================================================
# Hypothesis Strategies for Generating Test Data
# =============================================================================


statuses = st.sampled_from(list(WorkItemStatus))


@st.composite
def seeded_batch(draw: st.DrawFn):
    """Generate stored statuses, a request id list and a target status.

    Ids past the stored prefix are never seeded, so the request mixes
    stored ids (possibly repeated) with unknown ones.
    """
    ids = draw(st.lists(st.uuids(version=4), min_size=1, max_size=11, unique=True))
    stored_count = draw(st.integers(min_value=0, max_value=len(ids)))
    stored: Dict[UUID, WorkItemStatus] = {
        item_id: draw(statuses) for item_id in ids[:stored_count]
    }
    requested = draw(st.lists(st.sampled_from(ids), min_size=1, max_size=15))
    target = draw(statuses)
    return stored, requested, target


def is_eligible(status: WorkItemStatus, target: WorkItemStatus) -> bool:
    return status not in TERMINAL_STATUSES and status != target


# =============================================================================
# Property Tests
# =============================================================================


class TestBulkTransitionCounts:
    @given(batch=seeded_batch())
    @settings(max_examples=100)
    def test_counts_partition_the_distinct_ids(self, batch):
        stored, requested, target = batch
        tenant_id = uuid4()

        async def scenario():
            repository = RecordingWorkItemRepository()
            for item_id, status in stored.items():
                await repository.seed(tenant_id, item_id, status)
            result = await WorkItemService(repository, clock=StepClock()).bulk_transition(
                tenant_id,
                BulkTransitionCommand(work_item_ids=requested, target_status=target),
            )
            after = {
                item_id: (await repository.get_by_id(tenant_id, item_id)).status
                for item_id in stored
            }
            return result, after

        result, after = run_async(scenario())

        distinct = set(requested)
        expected_updated = {
            item_id
            for item_id in distinct
            if item_id in stored and is_eligible(stored[item_id], target)
        }

        assert result.updated_count + result.rejected_count == len(distinct)
        assert result.total_count == len(distinct)
        assert result.updated_count == len(expected_updated)

        for item_id, status in stored.items():
            if item_id in expected_updated:
                assert after[item_id] == target
            else:
                assert after[item_id] == status

    @given(status=st.sampled_from([s for s in WorkItemStatus if s not in TERMINAL_STATUSES]))
    @settings(max_examples=100)
    def test_same_status_counts_as_rejected(self, status):
        async def scenario():
            repository = RecordingWorkItemRepository()
            tenant_id, item_id = uuid4(), uuid4()
            await repository.seed(tenant_id, item_id, status)
            result = await WorkItemService(repository).bulk_transition(
                tenant_id,
                BulkTransitionCommand(work_item_ids=[item_id], target_status=status),
            )
            return result, repository.transitions

        result, transitions = run_async(scenario())

        assert result.updated_count == 0
        assert result.rejected_count == 1
        assert transitions == []

    @given(
        statuses_by_item=st.lists(statuses, min_size=1, max_size=6),
        target=statuses,
    )
    @settings(max_examples=100)
    def test_other_tenant_items_are_untouched(self, statuses_by_item, target):
        async def scenario():
            repository = RecordingWorkItemRepository()
            owner, intruder = uuid4(), uuid4()
            item_ids: List[UUID] = []
            for status in statuses_by_item:
                item_id = uuid4()
                item_ids.append(item_id)
                await repository.seed(owner, item_id, status)
            result = await WorkItemService(repository).bulk_transition(
                intruder,
                BulkTransitionCommand(work_item_ids=item_ids, target_status=target),
            )
            after = [
                (await repository.get_by_id(owner, item_id)).status
                for item_id in item_ids
            ]
            return result, after

        result, after = run_async(scenario())

        assert result.updated_count == 0
        assert result.rejected_count == len(statuses_by_item)
        assert after == statuses_by_item


class TestConcurrentBulkTransitions:
    @given(
        item_count=st.integers(min_value=1, max_value=10),
        callers=st.integers(min_value=2, max_value=5),
        target=st.sampled_from([WorkItemStatus.DONE, WorkItemStatus.BLOCKED]),
    )
    @settings(max_examples=100)
    def test_overlapping_batches_transition_each_item_once(
        self, item_count, callers, target
    ):
        async def scenario():
            repository = RecordingWorkItemRepository()
            tenant_id = uuid4()
            item_ids = [uuid4() for _ in range(item_count)]
            for item_id in item_ids:
                await repository.seed(tenant_id, item_id, WorkItemStatus.NEW)
            service = WorkItemService(repository)
            results = await asyncio.gather(
                *[
                    service.bulk_transition(
                        tenant_id,
                        BulkTransitionCommand(
                            work_item_ids=item_ids,
                            target_status=target,
                            correlation_id=f"caller-{index}",
                        ),
                    )
                    for index in range(callers)
                ]
            )
            return results, repository.transitions

        results, transitions = run_async(scenario())

        assert sum(result.updated_count for result in results) == item_count
        assert sum(result.rejected_count for result in results) == item_count * (
            callers - 1
        )
        assert len(transitions) == item_count
        assert len({record.work_item_id for record in transitions}) == item_count
