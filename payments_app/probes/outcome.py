"""Probe step recording and outcome classification.

A probe runs a fixed sequence of steps against one dependency. Every step is recorded
as a ``ProbeStep``; the first failing step aborts the sequence. The probe then turns its
steps into a ``ProbeOutcome``:

- success: every required step succeeded
- partial_success: the primary step succeeded but the secondary one did not
- error: the primary step failed, or the client could not be built at all

Routes only render outcomes, so "consume timed out" is an ordinary value here rather
than an exception travelling up to the framework.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from payments_app.core.exceptions import ErrorKind
from payments_app.schemas import ProbeStepRead

T = TypeVar("T")


class OutcomeStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"


@dataclass
class ProbeStep:
    """One attempted operation of a probe."""

    operation: str
    succeeded: bool
    value: Any = None
    error: str | None = None
    duration_ms: float = 0.0

    def to_read(self) -> ProbeStepRead:
        return ProbeStepRead(
            operation=self.operation,
            succeeded=self.succeeded,
            value=self.value,
            error=self.error,
            duration_ms=round(self.duration_ms, 2),
        )


@dataclass
class StepRecorder:
    """Awaits probe operations in order and keeps a record of each one."""

    steps: list[ProbeStep] = field(default_factory=list)

    async def run(
        self,
        operation: str,
        awaitable: Awaitable[T],
        *,
        record_value: bool = False,
    ) -> T:
        """Await one operation, record it and return its value.

        A failure is recorded and re-raised so the caller's sequence stops there.
        """
        start = time.monotonic()
        try:
            value = await awaitable
        except Exception as exc:
            self.steps.append(
                ProbeStep(
                    operation=operation,
                    succeeded=False,
                    error=str(exc) or type(exc).__name__,
                    duration_ms=(time.monotonic() - start) * 1000,
                )
            )
            raise
        self.steps.append(
            ProbeStep(
                operation=operation,
                succeeded=True,
                value=value if record_value else None,
                duration_ms=(time.monotonic() - start) * 1000,
            )
        )
        return value

    def read(self) -> list[ProbeStepRead]:
        return [step.to_read() for step in self.steps]


@dataclass
class ProbeOutcome:
    """Result of one probe invocation; the only thing handed back to the route."""

    status: OutcomeStatus
    body: dict[str, Any]
    reason: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def http_status(self) -> int:
        # partial_success is informational, not a failure
        return 500 if self.status is OutcomeStatus.ERROR else 200

    @classmethod
    def success(cls, body: dict[str, Any]) -> ProbeOutcome:
        return cls(status=OutcomeStatus.SUCCESS, body=body)

    @classmethod
    def partial(cls, reason: str, body: dict[str, Any]) -> ProbeOutcome:
        return cls(status=OutcomeStatus.PARTIAL_SUCCESS, body=body, reason=reason)

    @classmethod
    def error(
        cls,
        kind: ErrorKind,
        body: dict[str, Any],
        detail: str | None = None,
    ) -> ProbeOutcome:
        return cls(status=OutcomeStatus.ERROR, body=body, reason=detail, error_kind=kind)
