# Business Logic Services
from escalator.services.escalation_engine import (
    EvaluationSummary,
    evaluate_workspace,
    fire_rule,
)
from escalator.services.record_sources import (
    Candidate,
    RecordSourceRegistry,
    SqlAlchemyRecordSource,
    build_default_registry,
    get_default_registry,
)
from escalator.services.scheduler import (
    PollingScheduler,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "Candidate",
    "EvaluationSummary",
    "PollingScheduler",
    "RecordSourceRegistry",
    "SqlAlchemyRecordSource",
    "build_default_registry",
    "evaluate_workspace",
    "fire_rule",
    "get_default_registry",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
