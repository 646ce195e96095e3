"""Execution strategy selection.

Decides how many backends a request fans out to, based on the confidence of
the best detection:

- high confidence: query the top ecosystem only
- medium confidence: query the top few in parallel
- low confidence: query every detected ecosystem in parallel
"""

from pkgrouter.config import RouterSettings
from pkgrouter.models.package import ExecutionMode, ExecutionPlan, ManagerDetection


class ExecutionStrategySelector:
    """Turn sorted, available detections into an execution plan."""

    def __init__(self, settings: RouterSettings | None = None) -> None:
        self._settings = settings or RouterSettings()

    def select_strategy(self, detections: list[ManagerDetection]) -> ExecutionPlan:
        """Pick single, limited or all mode.

        Args:
            detections: Detections sorted by confidence (highest first) and
                already filtered to available backends.

        Returns:
            The plan. An empty input yields a single-mode plan with no
            candidates, which callers must treat as a failure.
        """
        if not detections:
            return ExecutionPlan(mode=ExecutionMode.SINGLE, candidates=[], parallel=False)

        top = detections[0]
        if top.confidence >= self._settings.high_confidence:
            return ExecutionPlan(
                mode=ExecutionMode.SINGLE,
                candidates=[top.manager_id],
                parallel=False,
            )

        if top.confidence >= self._settings.medium_confidence:
            return ExecutionPlan(
                mode=ExecutionMode.LIMITED,
                candidates=[d.manager_id for d in detections[: self._settings.limited_count]],
                parallel=True,
            )

        return ExecutionPlan(
            mode=ExecutionMode.ALL,
            candidates=[d.manager_id for d in detections],
            parallel=True,
        )
