"""Background escalation polling.

APScheduler-based scheduler that runs one evaluation pass per active
workspace on a fixed interval, and caches the latest run summary for
monitoring views.
"""

import asyncio
import enum
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from escalator.config import settings
from escalator.database import get_session_maker
from escalator.logging_config import get_logger
from escalator.services.escalation_engine import EvaluationSummary, evaluate_workspace
from escalator.services.escalation_rules import count_active_rules
from escalator.services.record_sources import RecordSourceRegistry

logger = get_logger(__name__)


class PassState(str, enum.Enum):
    """Evaluation state of a monitored workspace."""

    IDLE = "idle"
    EVALUATING = "evaluating"


@dataclass
class WorkspaceMonitor:
    """Per-workspace polling state."""

    workspace_id: uuid.UUID
    actor_id: uuid.UUID
    state: PassState = PassState.IDLE
    last_summary: EvaluationSummary | None = None
    last_run_at: datetime | None = None
    paused: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def job_id_for(workspace_id: uuid.UUID) -> str:
    return f"escalation_pass:{workspace_id}"


class PollingScheduler:
    """Drives periodic evaluation passes for activated workspaces.

    A workspace is polled only while it is activated with an actor. Passes
    for the same workspace never overlap inside this process; overlap
    across processes is handled by the escalation log's unique index.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        registry: RecordSourceRegistry | None = None,
        interval_minutes: int | None = None,
        stale_margin_minutes: int | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self._session_factory = session_factory
        self._registry = registry
        self.interval = timedelta(
            minutes=interval_minutes or settings.escalation_poll_interval_minutes
        )
        margin = (
            stale_margin_minutes
            if stale_margin_minutes is not None
            else settings.escalation_summary_stale_margin_minutes
        )
        self.stale_after = max(self.interval - timedelta(minutes=margin), timedelta(0))
        self._scheduler = scheduler or AsyncIOScheduler()
        self._monitors: dict[uuid.UUID, WorkspaceMonitor] = {}

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_maker()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info(
                "Escalation scheduler started",
                interval_minutes=self.interval.total_seconds() / 60,
            )

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._monitors.clear()
        logger.info("Escalation scheduler stopped")

    def activate_workspace(
        self,
        workspace_id: uuid.UUID,
        actor_id: uuid.UUID | None,
    ) -> bool:
        """Start polling a workspace.

        The first pass runs immediately, then every interval.

        Args:
            workspace_id: Workspace to monitor.
            actor_id: Authenticated user on whose behalf polling runs.

        Returns:
            True if polling is active, False when there is no actor.
        """
        if actor_id is None:
            logger.info(
                "Not scheduling escalation polling without an actor",
                workspace_id=str(workspace_id),
            )
            return False

        monitor = self._monitors.get(workspace_id)
        if monitor is not None:
            monitor.actor_id = actor_id
            return True

        self._monitors[workspace_id] = WorkspaceMonitor(
            workspace_id=workspace_id,
            actor_id=actor_id,
        )
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=int(self.interval.total_seconds())),
            args=[workspace_id],
            id=job_id_for(workspace_id),
            name=f"Escalation pass for workspace {workspace_id}",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(UTC),
        )
        logger.info(
            "Scheduled escalation polling",
            workspace_id=str(workspace_id),
            actor_id=str(actor_id),
        )
        return True

    def deactivate_workspace(self, workspace_id: uuid.UUID) -> None:
        """Stop polling a workspace and drop its cached summary."""
        if self._monitors.pop(workspace_id, None) is None:
            return
        if self._scheduler.get_job(job_id_for(workspace_id)) is not None:
            self._scheduler.remove_job(job_id_for(workspace_id))
        logger.info("Stopped escalation polling", workspace_id=str(workspace_id))

    def is_active(self, workspace_id: uuid.UUID) -> bool:
        return workspace_id in self._monitors

    def is_paused(self, workspace_id: uuid.UUID) -> bool:
        monitor = self._monitors.get(workspace_id)
        return monitor is not None and monitor.paused

    def _pause(self, monitor: WorkspaceMonitor) -> None:
        if monitor.paused:
            return
        job_id = job_id_for(monitor.workspace_id)
        if self._scheduler.get_job(job_id) is not None:
            self._scheduler.pause_job(job_id)
        monitor.paused = True
        logger.info(
            "Paused escalation polling, no active rules",
            workspace_id=str(monitor.workspace_id),
        )

    def _resume(self, monitor: WorkspaceMonitor) -> None:
        if not monitor.paused:
            return
        job_id = job_id_for(monitor.workspace_id)
        if self._scheduler.get_job(job_id) is not None:
            self._scheduler.resume_job(job_id)
        monitor.paused = False
        logger.info(
            "Resumed escalation polling",
            workspace_id=str(monitor.workspace_id),
        )

    def rules_changed(self, workspace_id: uuid.UUID) -> None:
        """Resume a paused workspace after its rules were changed.

        The next tick re-checks the rule count and pauses again if the
        workspace still has no active rules.
        """
        monitor = self._monitors.get(workspace_id)
        if monitor is not None:
            self._resume(monitor)

    def state(self, workspace_id: uuid.UUID) -> PassState:
        monitor = self._monitors.get(workspace_id)
        return monitor.state if monitor is not None else PassState.IDLE

    def cached_summary(self, workspace_id: uuid.UUID) -> EvaluationSummary | None:
        monitor = self._monitors.get(workspace_id)
        return monitor.last_summary if monitor is not None else None

    def _is_fresh(self, monitor: WorkspaceMonitor) -> bool:
        if monitor.last_summary is None or monitor.last_run_at is None:
            return False
        return datetime.now(UTC) - monitor.last_run_at < self.stale_after

    async def run_pass(
        self,
        workspace_id: uuid.UUID,
        force: bool = True,
    ) -> EvaluationSummary:
        """Run an evaluation pass for an activated workspace.

        Args:
            workspace_id: Workspace UUID.
            force: When False, a fresh cached summary is returned instead
                of evaluating again.

        Returns:
            The pass summary (or the cached one).

        Raises:
            KeyError: If the workspace is not activated.
        """
        monitor = self._monitors[workspace_id]

        async with monitor.lock:
            if not force and self._is_fresh(monitor):
                return monitor.last_summary

            monitor.state = PassState.EVALUATING
            try:
                async with self.session_factory() as db:
                    if await count_active_rules(db, workspace_id) == 0:
                        # No ticks until a rule shows up
                        self._pause(monitor)
                        summary = EvaluationSummary(evaluated_at=datetime.now(UTC))
                    else:
                        self._resume(monitor)
                        summary = await evaluate_workspace(
                            db, workspace_id, registry=self._registry
                        )
            finally:
                monitor.state = PassState.IDLE

            monitor.last_summary = summary
            monitor.last_run_at = datetime.now(UTC)
            return summary

    async def get_summary(self, workspace_id: uuid.UUID) -> EvaluationSummary:
        """Latest run summary for a workspace.

        Served from cache until shortly before the next scheduled tick;
        a stale or missing summary triggers an on-demand pass. Inactive
        workspaces report an empty summary.
        """
        if workspace_id not in self._monitors:
            return EvaluationSummary()
        return await self.run_pass(workspace_id, force=False)

    async def _tick(self, workspace_id: uuid.UUID) -> None:
        if workspace_id not in self._monitors:
            return
        try:
            await self.run_pass(workspace_id)
        except Exception as e:
            logger.error(
                "Scheduled escalation pass failed",
                workspace_id=str(workspace_id),
                error=str(e),
            )


# Global scheduler instance
scheduler: PollingScheduler | None = None


def start_scheduler() -> PollingScheduler:
    """Start the background escalation scheduler.

    Returns:
        The started scheduler instance
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return scheduler

    scheduler = PollingScheduler()
    scheduler.start()
    return scheduler


def stop_scheduler() -> None:
    """Stop the background escalation scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None


def get_scheduler() -> PollingScheduler | None:
    """Get the current scheduler instance, or None if not started."""
    return scheduler


@asynccontextmanager
async def scheduler_lifespan() -> AsyncGenerator[PollingScheduler, None]:
    """Async context manager for scheduler lifecycle."""
    instance = start_scheduler()
    try:
        yield instance
    finally:
        stop_scheduler()
