"""
Metrics Collection Utilities

Per-run metrics for workflow steps: status and timing of each step, plus a
workflow-level roll-up.
"""

import time
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .types import StepMetrics, StepStatus


class MetricsCollector:
    """
    Collect step metrics for one workflow run.

    Supports both a flat per-step history (``record``) and the detailed
    per-run view (``record_step`` / ``get_workflow_metrics``).
    """

    def __init__(self, name: str = "workflow"):
        """
        Initialize metrics collector.

        Args:
            name: Identifier for this collector (the workflow name)
        """
        self.name = name
        self.metrics: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.step_metrics: Dict[str, StepMetrics] = {}
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    def start(self) -> None:
        """Mark start of execution."""
        self.start_time = datetime.now()
        self.end_time = None
        self.step_metrics = {}

    def stop(self) -> None:
        """Mark end of execution."""
        self.end_time = datetime.now()

    def record(
        self,
        step_id: str,
        duration_ms: float,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Append one execution to the flat history.

        Args:
            step_id: Step identifier
            duration_ms: Execution time in milliseconds
            status: A ``StepStatus`` value
            details: Optional additional details
        """
        self.metrics[step_id].append({
            "timestamp": time.time(),
            "duration_ms": duration_ms,
            "status": status,
            "details": details or {},
        })

    def record_step(
        self,
        step_id: str,
        status: StepStatus,
        duration_ms: float = 0.0,
        error: Optional[str] = None,
        warnings: Optional[List[str]] = None,
    ) -> None:
        """
        Record the outcome of a step in this run.

        Args:
            step_id: Step identifier
            status: Final status of the step
            duration_ms: Execution time in milliseconds
            error: Error message if the step failed
            warnings: Warning messages
        """
        self.step_metrics[step_id] = StepMetrics(
            name=step_id,
            status=status,
            duration_ms=duration_ms,
            error_message=error,
            warnings=list(warnings or []),
        )
        self.record(step_id, duration_ms, status.value, {"error": error} if error else None)

    def merge(self, other: "MetricsCollector") -> None:
        """Append another collector's flat history to this one."""
        for step_id, executions in other.metrics.items():
            self.metrics[step_id].extend(executions)

    def get_summary(self) -> Dict[str, Any]:
        """
        Get per-step statistics over the flat history.

        Returns:
            Dict mapping step id to count/avg/min/max/success_rate
        """
        summary = {}
        for step_id, executions in self.metrics.items():
            durations = [e["duration_ms"] for e in executions]
            successes = [e for e in executions if e["status"] == StepStatus.SUCCESS.value]
            summary[step_id] = {
                "count": len(executions),
                "avg_ms": sum(durations) / len(durations) if durations else 0,
                "min_ms": min(durations) if durations else 0,
                "max_ms": max(durations) if durations else 0,
                "success_rate": len(successes) / len(executions) if executions else 0,
            }
        return summary

    def get_workflow_metrics(self) -> Dict[str, Any]:
        """
        Get detailed metrics for the run.

        Returns:
            Dict with workflow-level summary and per-step details
        """
        total_duration_ms = 0.0
        if self.start_time and self.end_time:
            total_duration_ms = (self.end_time - self.start_time).total_seconds() * 1000

        statuses = {m.status for m in self.step_metrics.values()}
        if StepStatus.FAILED in statuses or StepStatus.TIMEOUT in statuses:
            overall_status = "failed"
        elif StepStatus.SUCCESS in statuses:
            overall_status = "success"
        else:
            overall_status = "unknown"

        all_warnings: List[str] = []
        for metrics in self.step_metrics.values():
            all_warnings.extend(metrics.warnings)

        executed = [
            m for m in self.step_metrics.values() if m.status != StepStatus.SKIPPED
        ]
        return {
            "workflow_name": self.name,
            "overall_status": overall_status,
            "total_duration_ms": total_duration_ms,
            "nodes_executed": len(executed),
            "nodes_skipped": len(self.step_metrics) - len(executed),
            "total_warnings": len(all_warnings),
            "nodes": {k: m.to_dict() for k, m in self.step_metrics.items()},
            "warnings": all_warnings,
        }
