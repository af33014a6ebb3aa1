"""Content quality workflow: classification, assessment and orchestration."""

from doclens_core.workflow import (
    BatchFailure,
    BatchResult,
    BatchSummary,
    ContentWorkflow,
    StatusReport,
    WorkflowReport,
)

__all__ = [
    "BatchFailure",
    "BatchResult",
    "BatchSummary",
    "ContentWorkflow",
    "StatusReport",
    "WorkflowReport",
]
