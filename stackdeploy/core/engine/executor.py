"""
Engine executor — run the install steps in order.

The pipeline is a list of named ``Step``s. Each step receives the
current ``InstallConfig`` and returns an updated copy (or None when
it learned nothing new). A yes/no-gated step asks first; declining
records a skip. The first ``InstallError`` stops the run.

Flow:
    config → step 1 → step 2 → … → PipelineReport
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from stackdeploy.core.errors import InstallError
from stackdeploy.core.models.deployment import InstallConfig
from stackdeploy.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

StepFn = Callable[[InstallConfig], InstallConfig | None]
AskFn = Callable[[str, bool], bool]


class StepSkipped(Exception):
    """Raised by a step that decides on its own there is nothing to do."""

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


@dataclass
class Step:
    """One named unit of work in the install pipeline.

    Attributes:
        name: Short identifier shown in the report.
        run: The work; returns the evolved config or None.
        confirm: Yes/no question asked before running; None runs unconditionally.
        default: Answer used on empty input to ``confirm``.
        on_decline: Called with no arguments when the operator answers no.
    """

    name: str
    run: StepFn
    confirm: str | None = None
    default: bool = False
    on_decline: Callable[[], None] | None = None


@dataclass
class PipelineReport:
    """Result of running the pipeline."""

    run_id: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    config: InstallConfig | None = None
    error: InstallError | None = None

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        return "ok" if self.all_ok else "failed"

    def receipt(self, step: str) -> Receipt | None:
        for r in self.receipts:
            if r.step == step:
                return r
        return None

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def run_pipeline(
    steps: list[Step],
    config: InstallConfig,
    ask: AskFn | None = None,
) -> PipelineReport:
    """Run ``steps`` in order, threading the config through them.

    Args:
        steps: Ordered steps.
        config: Initial configuration.
        ask: ``(question, default) -> bool`` for gated steps. Without it
            every gate takes its default answer.

    Returns:
        PipelineReport. On failure, ``report.error`` holds the exception
        and no later step has run. ``KeyboardInterrupt`` is not caught.
    """
    report = PipelineReport(run_id=generate_run_id(), config=config)

    for step in steps:
        if step.confirm is not None:
            accepted = ask(step.confirm, step.default) if ask else step.default
            if not accepted:
                if step.on_decline is not None:
                    step.on_decline()
                report.receipts.append(Receipt.skip(step.name, "declined"))
                logger.info("⊘ %s → declined", step.name)
                continue

        start = time.monotonic()
        try:
            updated = step.run(report.config)
        except StepSkipped as e:
            report.receipts.append(Receipt.skip(step.name, e.reason))
            logger.info("⊘ %s → %s", step.name, e.reason or "skipped")
            continue
        except InstallError as e:
            duration = int((time.monotonic() - start) * 1000)
            report.receipts.append(Receipt.failure(step.name, str(e), duration_ms=duration))
            report.error = e
            logger.error("✗ %s → %s", step.name, e)
            break

        duration = int((time.monotonic() - start) * 1000)
        if updated is not None:
            report.config = updated
        report.receipts.append(Receipt.success(step.name, duration_ms=duration))
        logger.info("✓ %s (%dms)", step.name, duration)

    return report


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
