"""
PipelineStep — abstract base class for the four pipeline stages.

The orchestrator announces each step in_progress with start_message(),
awaits execute(), and announces the returned StepOutcome as completed.
Steps only implement the stage's work; they raise on failure and never
mark themselves failed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from loandocs.core.constants import StepName
from loandocs.pipeline.context import JobContext


@dataclass
class StepOutcome:
    """Completion message plus metadata for the logs."""

    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


class PipelineStep(ABC):
    """
    Base class for every pipeline step.

    Subclasses MUST implement:
        - name (StepName)        — which of the four stages this is
        - start_message(ctx)     — in-progress text shown while running
        - execute(ctx)           — the stage's work
    """

    name: StepName
    description: str = "No description"

    @abstractmethod
    def start_message(self, ctx: JobContext) -> str:
        ...

    @abstractmethod
    async def execute(self, ctx: JobContext) -> StepOutcome:
        """
        Run the stage.  Read from and write to `ctx` to pass documents
        between steps.  Any exception fails this step and the job.
        """
        ...

    def _done(self, message: str, **metadata: Any) -> StepOutcome:
        return StepOutcome(message=message, metadata=metadata)
