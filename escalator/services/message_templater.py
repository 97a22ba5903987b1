"""Notification text rendering."""

import re
from datetime import datetime
from typing import Protocol

DEFAULT_MESSAGE = "Escalation triggered for: {title}"

_PLACEHOLDER = re.compile(r"\{(entity_title|entity_id|hours_elapsed)\}")


class TemplateEntity(Protocol):
    id: object
    title: str
    created_at: datetime | None


def hours_elapsed(created_at: datetime | None, now: datetime | None) -> int | None:
    """Whole hours between record creation and ``now``."""
    if created_at is None or now is None:
        return None
    return max(int((now - created_at).total_seconds() // 3600), 0)


def render(
    template: str | None,
    entity: TemplateEntity,
    now: datetime | None = None,
) -> str:
    """Render a rule's message template for one record.

    Supported placeholders are ``{entity_title}``, ``{entity_id}`` and
    ``{hours_elapsed}``; anything else is left as written. Substitution
    is single pass, so placeholder-like text inside a title is not
    expanded again.

    Args:
        template: The rule's message template, may be None or empty.
        entity: The record being escalated.
        now: Evaluation time, needed for ``{hours_elapsed}``.

    Returns:
        The rendered message.
    """
    if not template:
        return DEFAULT_MESSAGE.format(title=entity.title)

    elapsed = hours_elapsed(entity.created_at, now)
    values = {
        "entity_title": entity.title,
        "entity_id": str(entity.id),
    }
    if elapsed is not None:
        values["hours_elapsed"] = str(elapsed)

    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def notification_title(rule_name: str) -> str:
    return f"Escalation: {rule_name}"
