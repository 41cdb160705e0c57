"""Service layer: analysis adapter, workflow controller and report presenter."""

from .analysis import AnalysisAdapter, AnalysisError, parse_detection_result
from .report import InspectionReport, build_report
from .workflow import WorkflowController, WorkflowState

__all__ = [
    "AnalysisAdapter",
    "AnalysisError",
    "InspectionReport",
    "WorkflowController",
    "WorkflowState",
    "build_report",
    "parse_detection_result",
]
