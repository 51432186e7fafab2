"""Property-based tests for the work item state machine and entities.

This module uses Hypothesis to verify that:
- Created work items start in New with created_at == updated_at
- Titles are trimmed and blank titles are rejected
- Terminal statuses reject every transition, same-status included
- Non-terminal statuses accept every target, including lateral moves
- updated_at never moves backwards
- Identity, content and terminal statuses cannot be reassigned directly

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError as PydanticValidationError

from src.workitems.errors import ErrorKind, InvalidStateError, ValidationError
from src.workitems.state import (
    EMPTY_ID,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    Tenant,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
    is_terminal_status,
    is_valid_transition,
)


# =============================================================================
# Hypothesis Strategies for Generating Test Data
# =============================================================================


NON_TERMINAL_STATUSES = [s for s in WorkItemStatus if s not in TERMINAL_STATUSES]

statuses = st.sampled_from(list(WorkItemStatus))
terminal_statuses = st.sampled_from(sorted(TERMINAL_STATUSES, key=lambda s: s.value))
non_terminal_statuses = st.sampled_from(NON_TERMINAL_STATUSES)
priorities = st.sampled_from(list(WorkItemPriority))
uuids = st.uuids().filter(lambda value: value != EMPTY_ID)

utc_datetimes = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)


@st.composite
def valid_title(draw: st.DrawFn) -> str:
    """Generate a title with at least one non-whitespace character."""
    core = draw(st.text(min_size=1, max_size=80).filter(lambda x: x.strip()))
    padding = draw(st.sampled_from(["", " ", "  ", "\t", "\n"]))
    return f"{padding}{core}{padding}"


blank_titles = st.text(alphabet=" \t\n\r", max_size=10)


def make_item(status: WorkItemStatus = WorkItemStatus.NEW) -> WorkItem:
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    item = WorkItem.create(
        id=uuid4(),
        tenant_id=uuid4(),
        title="Item",
        description=None,
        priority=WorkItemPriority.MEDIUM,
        created_at=created_at,
    )
    # Walk to the requested status directly; the entity only guards
    # transitions out of terminal statuses
    if status != WorkItemStatus.NEW:
        item.update_status(status, created_at)
    return item


# =============================================================================
# Property Tests
# =============================================================================


class TestWorkItemCreation:
    """Created items are New, trimmed and timestamped consistently."""

    @given(
        id=uuids,
        tenant_id=uuids,
        title=valid_title(),
        priority=priorities,
        created_at=utc_datetimes,
    )
    @settings(max_examples=100)
    def test_created_item_is_new_with_trimmed_title(
        self,
        id: UUID,
        tenant_id: UUID,
        title: str,
        priority: WorkItemPriority,
        created_at: datetime,
    ) -> None:
        item = WorkItem.create(
            id=id,
            tenant_id=tenant_id,
            title=title,
            description=None,
            priority=priority,
            created_at=created_at,
        )

        assert item.status == WorkItemStatus.NEW
        assert item.created_at == item.updated_at == created_at
        assert item.title == title.strip()
        assert item.title.strip() != ""
        assert item.priority == priority

    @given(title=blank_titles)
    @settings(max_examples=100)
    def test_blank_title_is_rejected(self, title: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            WorkItem.create(
                id=uuid4(),
                tenant_id=uuid4(),
                title=title,
                description=None,
                priority=WorkItemPriority.MEDIUM,
                created_at=datetime.now(timezone.utc),
            )

        assert exc_info.value.field == "title"
        assert exc_info.value.kind == ErrorKind.VALIDATION

    @given(description=st.one_of(st.none(), blank_titles))
    @settings(max_examples=50)
    def test_blank_description_becomes_none(self, description) -> None:
        item = WorkItem.create(
            id=uuid4(),
            tenant_id=uuid4(),
            title="Title",
            description=description,
            priority=WorkItemPriority.LOW,
            created_at=datetime.now(timezone.utc),
        )

        assert item.description is None

    def test_description_is_trimmed(self) -> None:
        item = WorkItem.create(
            id=uuid4(),
            tenant_id=uuid4(),
            title="Title",
            description="  some context \n",
            priority=WorkItemPriority.LOW,
            created_at=datetime.now(timezone.utc),
        )

        assert item.description == "some context"

    @pytest.mark.parametrize("field", ["id", "tenant_id"])
    @pytest.mark.parametrize("empty", [None, EMPTY_ID])
    def test_empty_identifiers_are_rejected(self, field: str, empty) -> None:
        kwargs = {
            "id": uuid4(),
            "tenant_id": uuid4(),
            "title": "Title",
            "description": None,
            "priority": WorkItemPriority.MEDIUM,
            "created_at": datetime.now(timezone.utc),
        }
        kwargs[field] = empty

        with pytest.raises(ValidationError) as exc_info:
            WorkItem.create(**kwargs)

        assert exc_info.value.field == field

    def test_review_telemetry_spike_scenario(self) -> None:
        item = WorkItem.create(
            id=uuid4(),
            tenant_id=uuid4(),
            title="Review telemetry spike",
            description=None,
            priority=WorkItemPriority.HIGH,
            created_at=datetime.now(timezone.utc),
        )

        assert item.status == WorkItemStatus.NEW
        assert item.priority == WorkItemPriority.HIGH
        assert item.title == "Review telemetry spike"


class TestStatusTransitions:
    """Terminal statuses are final; everything else may move anywhere."""

    @given(current=terminal_statuses, target=statuses)
    @settings(max_examples=100)
    def test_terminal_status_rejects_any_transition(
        self, current: WorkItemStatus, target: WorkItemStatus
    ) -> None:
        item = make_item(current)
        updated_at_before = item.updated_at

        with pytest.raises(InvalidStateError) as exc_info:
            item.update_status(target, updated_at_before + timedelta(hours=1))

        assert exc_info.value.current_status == current
        assert exc_info.value.target_status == target
        assert exc_info.value.kind == ErrorKind.CONFLICT
        assert item.status == current
        assert item.updated_at == updated_at_before

    @given(current=non_terminal_statuses, target=statuses)
    @settings(max_examples=100)
    def test_non_terminal_status_accepts_any_target(
        self, current: WorkItemStatus, target: WorkItemStatus
    ) -> None:
        item = make_item(current)
        changed_at = item.updated_at + timedelta(minutes=5)

        item.update_status(target, changed_at)

        assert item.status == target
        assert item.updated_at == changed_at

    def test_entity_does_not_short_circuit_same_status(self) -> None:
        item = make_item(WorkItemStatus.BLOCKED)
        changed_at = item.updated_at + timedelta(minutes=1)

        item.update_status(WorkItemStatus.BLOCKED, changed_at)

        assert item.status == WorkItemStatus.BLOCKED
        assert item.updated_at == changed_at

    @given(offset=st.integers(min_value=1, max_value=10_000))
    @settings(max_examples=50)
    def test_updated_at_never_moves_backwards(self, offset: int) -> None:
        item = make_item(WorkItemStatus.IN_PROGRESS)
        before = item.updated_at

        item.update_status(WorkItemStatus.BLOCKED, before - timedelta(seconds=offset))

        assert item.status == WorkItemStatus.BLOCKED
        assert item.updated_at == before

    @given(from_status=statuses, to_status=statuses)
    @settings(max_examples=100)
    def test_transition_map_matches_terminality(
        self, from_status: WorkItemStatus, to_status: WorkItemStatus
    ) -> None:
        assert is_valid_transition(from_status, to_status) == (
            not is_terminal_status(from_status)
        )

    def test_terminal_statuses_have_no_outgoing_transitions(self) -> None:
        assert TERMINAL_STATUSES == {WorkItemStatus.DONE, WorkItemStatus.CANCELLED}
        for status in TERMINAL_STATUSES:
            assert VALID_TRANSITIONS[status] == []


class TestEntityInvariants:
    """Only update_status() changes a work item after creation."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("id", uuid4()),
            ("tenant_id", uuid4()),
            ("title", "   "),
            ("title", "Renamed"),
            ("description", "Rewritten"),
            ("priority", WorkItemPriority.URGENT),
            ("created_at", datetime(2030, 1, 1, tzinfo=timezone.utc)),
        ],
    )
    def test_frozen_fields_reject_assignment(self, field: str, value) -> None:
        item = make_item()
        before = getattr(item, field)

        with pytest.raises(PydanticValidationError):
            setattr(item, field, value)

        assert getattr(item, field) == before

    @given(current=terminal_statuses, target=statuses)
    @settings(max_examples=100)
    def test_terminal_status_rejects_direct_assignment(
        self, current: WorkItemStatus, target: WorkItemStatus
    ) -> None:
        item = make_item(current)

        with pytest.raises(InvalidStateError):
            item.status = target

        assert item.status == current

    def test_status_assignment_is_validated(self) -> None:
        item = make_item(WorkItemStatus.IN_PROGRESS)

        with pytest.raises(PydanticValidationError):
            item.status = "Archived"

        assert item.status == WorkItemStatus.IN_PROGRESS

    def test_tenant_identity_is_frozen(self) -> None:
        tenant = Tenant.create(uuid4(), "Acme", datetime.now(timezone.utc))

        with pytest.raises(PydanticValidationError):
            tenant.id = uuid4()
        with pytest.raises(PydanticValidationError):
            tenant.name = "Other"

        assert tenant.name == "Acme"


class TestNaiveTimestamps:
    """Naive timestamps are read as UTC instead of failing comparisons."""

    def test_create_reads_naive_created_at_as_utc(self) -> None:
        item = WorkItem.create(
            id=uuid4(),
            tenant_id=uuid4(),
            title="Item",
            description=None,
            priority=WorkItemPriority.LOW,
            created_at=datetime(2024, 1, 1, 9, 0),
        )

        assert item.created_at == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        assert item.updated_at.tzinfo is timezone.utc

    def test_update_status_accepts_naive_timestamp(self) -> None:
        item = make_item()

        item.update_status(WorkItemStatus.BLOCKED, datetime(2024, 1, 2, 8, 30))

        assert item.status == WorkItemStatus.BLOCKED
        assert item.updated_at == datetime(2024, 1, 2, 8, 30, tzinfo=timezone.utc)

    def test_naive_timestamp_before_updated_at_keeps_updated_at(self) -> None:
        item = make_item()
        before = item.updated_at

        item.update_status(WorkItemStatus.IN_PROGRESS, datetime(2023, 12, 31))

        assert item.updated_at == before


class TestPriority:
    def test_priorities_are_ordered(self) -> None:
        ranks = [priority.rank for priority in WorkItemPriority]
        assert ranks == sorted(ranks)
        assert WorkItemPriority.LOW.rank < WorkItemPriority.URGENT.rank

    def test_status_values_are_member_names(self) -> None:
        assert WorkItemStatus("InProgress") is WorkItemStatus.IN_PROGRESS
        assert WorkItemStatus.CANCELLED.value == "Cancelled"


class TestTenant:
    def test_create_trims_name_and_is_active(self) -> None:
        created_at = datetime.now(timezone.utc)
        tenant = Tenant.create(uuid4(), "  Acme  ", created_at)

        assert tenant.name == "Acme"
        assert tenant.is_active is True
        assert tenant.created_at == created_at

    @pytest.mark.parametrize("name", ["", "   ", "\t"])
    def test_blank_name_is_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError):
            Tenant.create(uuid4(), name, datetime.now(timezone.utc))

    def test_empty_id_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Tenant.create(EMPTY_ID, "Acme", datetime.now(timezone.utc))

    def test_deactivate(self) -> None:
        tenant = Tenant.create(uuid4(), "Acme", datetime.now(timezone.utc))
        tenant.deactivate()
        assert tenant.is_active is False
