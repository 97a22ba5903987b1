"""Tests for role expansion."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from escalator.models.user_role import UserRole
from escalator.services.role_expander import members_of, resolve_targets
from tests.conftest import add_role_members


class TestMembersOf:
    """Tests for members_of against the role directory."""

    @pytest.mark.asyncio
    async def test_returns_role_holders_in_workspace(self, db_session, workspace_id):
        managers = await add_role_members(db_session, workspace_id, "manager", count=2)
        await add_role_members(db_session, workspace_id, "inspector")
        await add_role_members(db_session, uuid.uuid4(), "manager")

        result = await members_of(db_session, workspace_id, "manager")

        assert sorted(result) == sorted(managers)

    @pytest.mark.asyncio
    async def test_unknown_role_has_no_members(self, db_session, workspace_id):
        assert await members_of(db_session, workspace_id, "janitor") == []


class TestResolveTargets:
    """Tests for resolve_targets."""

    @pytest.mark.asyncio
    async def test_union_is_deduplicated(self, db_session, workspace_id):
        [admin] = await add_role_members(db_session, workspace_id, "admin")
        [owner] = await add_role_members(db_session, workspace_id, "owner")
        # Same user under a second role
        db_session.add(UserRole(workspace_id=workspace_id, user_id=admin, role="owner"))
        await db_session.commit()

        targets = await resolve_targets(
            db_session,
            workspace_id,
            ["admin", "owner", "admin"],
            [str(admin)],
        )

        assert targets == {admin, owner}

    @pytest.mark.asyncio
    async def test_explicit_ids_only_skips_directory(self, workspace_id):
        user_id = uuid.uuid4()
        db = AsyncMock()

        targets = await resolve_targets(db, workspace_id, [], [str(user_id), user_id])

        assert targets == {user_id}
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_inputs_resolve_to_nobody(self, workspace_id):
        db = AsyncMock()

        assert await resolve_targets(db, workspace_id, None, None) == set()
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_user_id_is_skipped(self, workspace_id):
        user_id = uuid.uuid4()

        targets = await resolve_targets(
            AsyncMock(), workspace_id, [], ["not-a-uuid", str(user_id)]
        )

        assert targets == {user_id}

    @pytest.mark.asyncio
    async def test_each_role_is_looked_up_once(self, workspace_id):
        with patch(
            "escalator.services.role_expander.members_of",
            new_callable=AsyncMock,
        ) as mock_members:
            mock_members.return_value = []

            await resolve_targets(
                AsyncMock(), workspace_id, ["owner", "admin", "owner", ""], []
            )

        looked_up = [call.args[2] for call in mock_members.await_args_list]
        assert looked_up == ["admin", "owner"]
