"""Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite database per test (aiosqlite), with
JSONB columns rendered as JSON.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

os.environ["TESTING"] = "true"

from escalator.config import settings  # noqa: E402

settings.testing = True

import escalator.models  # noqa: E402,F401 - register all tables
from escalator.models.base import Base  # noqa: E402
from escalator.models.escalation_rule import EscalationRule  # noqa: E402
from escalator.models.user_role import UserRole  # noqa: E402


@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database with every table created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'escalator.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def workspace_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def now() -> datetime:
    return datetime.now(UTC)


def hours_ago(now: datetime, hours: float) -> datetime:
    return now - timedelta(hours=hours)


async def add_rule(db: AsyncSession, workspace_id: uuid.UUID, **overrides) -> EscalationRule:
    """Insert an active rule with sensible defaults."""
    values = {
        "workspace_id": workspace_id,
        "name": "Severe issues",
        "trigger_entity": "issue",
        "trigger_condition": {"field": "severity", "operator": "equals", "value": "severe"},
        "delay_hours": 0,
        "notify_roles": [],
        "notify_user_ids": [],
        "notification_channels": [],
        "is_active": True,
    }
    values.update(overrides)
    rule = EscalationRule(**values)
    db.add(rule)
    await db.commit()
    return rule


async def add_role_members(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    role: str,
    count: int = 1,
) -> list[uuid.UUID]:
    """Give ``count`` new users a role in the workspace."""
    user_ids = [uuid.uuid4() for _ in range(count)]
    db.add_all(
        UserRole(workspace_id=workspace_id, user_id=user_id, role=role)
        for user_id in user_ids
    )
    await db.commit()
    return user_ids


async def add_record(
    db: AsyncSession,
    model: type,
    workspace_id: uuid.UUID,
    created_at: datetime,
    **fields,
):
    """Insert one operational record (work order, issue, ...)."""
    record = model(workspace_id=workspace_id, created_at=created_at, **fields)
    db.add(record)
    await db.commit()
    return record
