"""Minimal saga runner: forward steps with registered compensations.

Each successful step registers how to undo itself. On failure the caller
runs ``compensate()``, which undoes the steps in reverse order. A failing
compensation is logged and recorded, and the remaining ones still run.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from erp.core.errors import CompensationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompensatingAction:
    step: str
    undo: Callable[[], Awaitable[object]]


class Saga:
    def __init__(self, name: str) -> None:
        self.name = name
        self._compensations: list[CompensatingAction] = []

    def on_rollback(self, step: str, undo: Callable[[], Awaitable[object]]) -> None:
        self._compensations.append(CompensatingAction(step=step, undo=undo))

    async def compensate(self) -> list[CompensationFailed]:
        """Undo registered steps newest-first. Never raises."""
        failures: list[CompensationFailed] = []
        while self._compensations:
            action = self._compensations.pop()
            try:
                await action.undo()
            except Exception as exc:
                # Leaves an orphan behind; later compensations still run
                logger.exception(
                    "Saga %s: compensation '%s' failed", self.name, action.step
                )
                failures.append(CompensationFailed(step=action.step, error=repr(exc)))
            else:
                logger.info("Saga %s: compensated '%s'", self.name, action.step)
        return failures
