"""
Workflow Orchestration Module

Architectural Intent:
- DAG-based execution of the apply pipeline
- Independent steps (security groups, image lookup, node groups) run concurrently
- Dependent steps block until every input has resolved

Parallelization Strategy:
- All steps whose dependencies are complete execute together
- Results from previous steps are available to dependent steps
- A failed critical step aborts the run after its level finishes;
  non-critical failures are stored as the step result
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Awaitable, Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class WorkflowStep:
    name: str
    execute: Callable[[dict[str, Any], dict[str, Any]], Awaitable[Any]]
    depends_on: list[str] = field(default_factory=list)
    is_critical: bool = True


class OrchestrationError(Exception):
    def __init__(self, message: str, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.step = step


class DAGOrchestrator:
    def __init__(self, steps: list[WorkflowStep]) -> None:
        self.steps: dict[str, WorkflowStep] = {s.name: s for s in steps}
        self._validated = False

    def _validate(self) -> None:
        for step in self.steps.values():
            unknown = [d for d in step.depends_on if d not in self.steps]
            if unknown:
                raise OrchestrationError(
                    f"Step {step.name} depends on unknown step(s): {', '.join(unknown)}",
                    step=step.name,
                )

        visited: set[str] = set()
        rec_stack: set[str] = set()

        def has_cycle(name: str) -> bool:
            visited.add(name)
            rec_stack.add(name)
            for dep in self.steps[name].depends_on:
                if dep not in visited:
                    if has_cycle(dep):
                        return True
                elif dep in rec_stack:
                    return True
            rec_stack.remove(name)
            return False

        for step_name in self.steps:
            if step_name not in visited and has_cycle(step_name):
                raise OrchestrationError(
                    f"Circular dependency detected involving step: {step_name}",
                    step=step_name,
                )

    def levels(self) -> list[list[str]]:
        """Steps grouped by the wave they run in, in declaration order."""
        if not self._validated:
            self._validate()
            self._validated = True
        done: set[str] = set()
        waves: list[list[str]] = []
        while len(done) < len(self.steps):
            wave = [
                name for name, step in self.steps.items()
                if name not in done and all(d in done for d in step.depends_on)
            ]
            waves.append(wave)
            done.update(wave)
        return waves

    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        completed: dict[str, Any] = {}

        for wave in self.levels():
            logger.debug("Running step(s): %s", ", ".join(wave))
            results = await asyncio.gather(
                *(self.steps[name].execute(context, completed) for name in wave),
                return_exceptions=True,
            )

            failure: Optional[tuple[str, BaseException]] = None
            for name, result in zip(wave, results):
                if isinstance(result, BaseException):
                    if self.steps[name].is_critical:
                        failure = failure or (name, result)
                        continue
                    logger.warning("Non-critical step %s failed: %s", name, result)
                completed[name] = result

            if failure is not None:
                name, cause = failure
                raise OrchestrationError(
                    f"Critical step {name} failed: {cause}", step=name
                ) from cause

        return completed
