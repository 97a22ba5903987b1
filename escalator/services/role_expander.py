"""Role expansion for escalation targets.

Turns a rule's role tags and explicit user ids into the set of users to
notify, using the workspace's role directory.
"""

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from escalator.logging_config import get_logger
from escalator.models.user_role import UserRole

logger = get_logger(__name__)


async def members_of(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    role: str,
) -> list[uuid.UUID]:
    """Get the users currently holding a role in a workspace.

    Args:
        db: Database session.
        workspace_id: Workspace UUID.
        role: Role tag, e.g. "manager".

    Returns:
        User ids holding the role.
    """
    result = await db.execute(
        select(UserRole.user_id).where(
            UserRole.workspace_id == workspace_id,
            UserRole.role == role,
        )
    )
    return [row[0] for row in result.all()]


def _parse_user_id(raw: object) -> uuid.UUID | None:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


async def resolve_targets(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    notify_roles: Iterable[str] | None,
    notify_user_ids: Iterable[str | uuid.UUID] | None,
) -> set[uuid.UUID]:
    """Resolve a rule's recipients into a deduplicated set of user ids.

    An empty result is valid: the rule still fires and is logged, it
    just produces no notifications.

    Args:
        db: Database session.
        workspace_id: Workspace the rule belongs to.
        notify_roles: Role tags to expand.
        notify_user_ids: Explicit recipients.

    Returns:
        Union of explicit ids and current members of every role.
    """
    targets: set[uuid.UUID] = set()

    for raw in notify_user_ids or []:
        user_id = _parse_user_id(raw)
        if user_id is None:
            logger.warning(
                "Skipping malformed notify user id",
                workspace_id=str(workspace_id),
                user_id=str(raw),
            )
            continue
        targets.add(user_id)

    for role in sorted({role for role in notify_roles or [] if role}):
        targets.update(await members_of(db, workspace_id, role))

    return targets
