"""
Repository re-exports so callers import from a single module:

    from psyrisk.infrastructure.repositories import AssessmentRepo, BatchRepo
"""

from .repositories_assessment import AssessmentRepo
from .repositories_batch import BatchRepo
from .repositories_report import ReportRepo
from .repositories_response import ResponseRepo

__all__ = [
    "AssessmentRepo",
    "BatchRepo",
    "ReportRepo",
    "ResponseRepo",
]
