"""
Application Orchestration Package

Architectural Intent:
- Contains workflow orchestration components
- DAG-based execution for dependency-ordered, parallel-safe provisioning
"""

from webfleet.application.orchestration.dag_orchestrator import (
    DAGOrchestrator,
    WorkflowStep,
    OrchestrationError,
)

__all__ = ["DAGOrchestrator", "WorkflowStep", "OrchestrationError"]
