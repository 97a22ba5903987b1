"""Tests for the open escalation check."""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from escalator.models.escalation_log import EscalationLogEntry
from escalator.services.dedup_guard import has_open_escalation
from tests.conftest import add_rule


async def add_log_entry(db, rule, entity_id, resolved_at=None) -> EscalationLogEntry:
    entry = EscalationLogEntry(
        workspace_id=rule.workspace_id,
        rule_id=rule.id,
        rule_name=rule.name,
        entity_type=rule.trigger_entity,
        entity_id=entity_id,
        resolved_at=resolved_at,
    )
    db.add(entry)
    await db.commit()
    return entry


class TestHasOpenEscalation:
    """Tests for has_open_escalation."""

    @pytest.mark.asyncio
    async def test_no_history(self, db_session, workspace_id):
        rule = await add_rule(db_session, workspace_id)

        assert await has_open_escalation(db_session, rule.id, uuid.uuid4()) is False

    @pytest.mark.asyncio
    async def test_open_entry(self, db_session, workspace_id):
        rule = await add_rule(db_session, workspace_id)
        entity_id = uuid.uuid4()
        await add_log_entry(db_session, rule, entity_id)

        assert await has_open_escalation(db_session, rule.id, entity_id) is True

    @pytest.mark.asyncio
    async def test_resolved_entry_is_not_open(self, db_session, workspace_id, now):
        rule = await add_rule(db_session, workspace_id)
        entity_id = uuid.uuid4()
        await add_log_entry(db_session, rule, entity_id, resolved_at=now)

        assert await has_open_escalation(db_session, rule.id, entity_id) is False

    @pytest.mark.asyncio
    async def test_scoped_to_rule(self, db_session, workspace_id):
        rule = await add_rule(db_session, workspace_id)
        other_rule = await add_rule(db_session, workspace_id, name="Other")
        entity_id = uuid.uuid4()
        await add_log_entry(db_session, other_rule, entity_id)

        assert await has_open_escalation(db_session, rule.id, entity_id) is False


class TestOpenEscalationIndex:
    """The partial unique index holds the invariant at the storage layer."""

    @pytest.mark.asyncio
    async def test_second_open_entry_rejected(self, db_session, workspace_id):
        rule = await add_rule(db_session, workspace_id)
        entity_id = uuid.uuid4()
        await add_log_entry(db_session, rule, entity_id)

        with pytest.raises(IntegrityError):
            await add_log_entry(db_session, rule, entity_id)

    @pytest.mark.asyncio
    async def test_resolved_entries_do_not_conflict(self, db_session, workspace_id, now):
        rule = await add_rule(db_session, workspace_id)
        entity_id = uuid.uuid4()
        await add_log_entry(db_session, rule, entity_id, resolved_at=now)
        await add_log_entry(db_session, rule, entity_id, resolved_at=now)

        await add_log_entry(db_session, rule, entity_id)

        assert await has_open_escalation(db_session, rule.id, entity_id) is True
