"""
LangSmith tracing for reconciliation steps.

Off unless LANGSMITH_TRACING=1. When on, each reconcile becomes a run tagged
with the service name; the controller and rollback snapshots are replaced by
the collection name in the recorded inputs.
"""
import logging
from typing import Any, Callable, Dict, Optional, Sequence
from shared.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TAGS = ("stocksuite", "reconcile")

def mutation_inputs(inputs: Dict[str, Any]) -> Dict[str, Any]:
    shown = {k: v for k, v in inputs.items() if k not in ("self", "snapshot")}
    controller = inputs.get("self")
    if controller is not None:
        shown["collection"] = getattr(controller, "name", None)
    return shown

def traceable(name: str, run_type: str = "chain", tags: Optional[Sequence[str]] = None) -> Callable:
    if not settings.langsmith_tracing:
        def _wrap(func):
            return func
        return _wrap

    # Lazy import so langsmith stays optional
    from langsmith import traceable as _traceable  # type: ignore
    logger.info(f"Tracing {name} to LangSmith project {settings.langsmith_project}")
    return _traceable(
        run_type=run_type,
        name=name,
        tags=list(tags or DEFAULT_TAGS),
        project_name=settings.langsmith_project,
        process_inputs=mutation_inputs,
    )
