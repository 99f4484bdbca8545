"""Result models for a bootstrap run.

``SetupRunResult`` aggregates one ``StageResult`` per pipeline stage plus
the identifiers captured along the way. It serialises with
``model_dump_json()`` for machine-readable output from the CLI.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """Outcome of a single pipeline stage."""

    PASSED = "PASSED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


class OverallStatus(str, Enum):
    """Overall status of a bootstrap run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    RUNNING = "RUNNING"


class StageResult(BaseModel):
    """Outcome of one stage."""

    name: str
    status: StageStatus = StageStatus.PASSED
    duration_seconds: float = 0.0
    detail: str = ""
    error: dict[str, Any] | None = None


class SetupRunResult(BaseModel):
    """Aggregated result of a Setup Orchestrator run."""

    run_id: str
    workdir: str
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    stages: list[StageResult] = Field(default_factory=list)
    identifiers: dict[str, str] = Field(default_factory=dict)
    overall_status: OverallStatus = OverallStatus.RUNNING
    failed_stage: str | None = None
    error: str | None = None
    exit_code: int = 0

    @property
    def success(self) -> bool:
        return self.overall_status == OverallStatus.PASSED

    def stage(self, name: str) -> StageResult | None:
        return next((s for s in self.stages if s.name == name), None)

    def mark_complete(self) -> None:
        """Stamp completion time and derive the overall status."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()
        if self.failed_stage is None and self.error is None:
            self.overall_status = OverallStatus.PASSED
            self.exit_code = 0
        else:
            self.overall_status = OverallStatus.FAILED
            self.exit_code = self.exit_code or 1

    @property
    def summary(self) -> str:
        passed = sum(1 for s in self.stages if s.status == StageStatus.PASSED)
        skipped = sum(1 for s in self.stages if s.status == StageStatus.SKIPPED)
        return f"{passed} passed, {skipped} skipped, status={self.overall_status.value}"


class LocalnetRunResult(BaseModel):
    """Outcome of the full run sequence: validator, setup, clock advance."""

    setup: SetupRunResult | None = None
    target_slot: int | None = None
    exit_code: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


__all__ = ["LocalnetRunResult", "OverallStatus", "SetupRunResult", "StageResult", "StageStatus"]
