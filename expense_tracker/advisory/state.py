"""
Advisory Projection

State machine for the advisory screen:

    IDLE -> LOADING -> SUCCESS | FAILED
                ^           |
                +-----------+  (refresh)

A refresh started while another is in flight cancels the older one; only
the latest refresh publishes. A failure publishes its message and leaves
the previous insight and report in place.
"""

import asyncio
from typing import Optional

import structlog

from expense_tracker.advisory.client import AdvisoryClient
from expense_tracker.models.advisory import AdvisoryStatus, AnalysisResult
from expense_tracker.projection.observable import Observable, ObservableStore

logger = structlog.get_logger(__name__)


class AdvisoryProjection:
    """Reactive state for the AI analysis screen."""

    def __init__(self, client: AdvisoryClient):
        self._client = client
        self.state = ObservableStore(
            spending_insights="",
            analysis_result="",
            is_loading=False,
            error=None,
            status=AdvisoryStatus.IDLE,
        )
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._settled_status = AdvisoryStatus.IDLE
        self._closed = False

    @property
    def spending_insights(self) -> Observable:
        return self.state["spending_insights"]

    @property
    def analysis_result(self) -> Observable:
        return self.state["analysis_result"]

    @property
    def is_loading(self) -> Observable:
        return self.state["is_loading"]

    @property
    def error(self) -> Observable:
        return self.state["error"]

    @property
    def status(self) -> Observable:
        return self.state["status"]

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def refresh(self) -> Optional[AnalysisResult]:
        """
        Run a new analysis, superseding any in-flight one.

        Returns the result, or None if a later refresh (or close) took over.
        """
        if self._closed:
            return None

        self._generation += 1
        generation = self._generation
        self._cancel_in_flight()

        self.state.publish(is_loading=True, error=None, status=AdvisoryStatus.LOADING)
        task = asyncio.ensure_future(self._client.analyze())
        self._task = task

        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return None
            # The caller itself was cancelled
            self._task = None
            self.state.publish(is_loading=False, status=self._settled_status)
            raise

        if generation != self._generation:
            return None
        self._task = None
        self._publish_result(result)
        return result

    def start_refresh(self) -> asyncio.Task:
        """Schedule refresh() on the running loop without awaiting it."""
        return asyncio.ensure_future(self.refresh())

    def _publish_result(self, result: AnalysisResult) -> None:
        if result.ok:
            self._settled_status = AdvisoryStatus.SUCCESS
            self.state.publish(
                spending_insights=result.advisory.insight,
                analysis_result=result.advisory.report,
                is_loading=False,
                error=None,
                status=AdvisoryStatus.SUCCESS,
            )
        else:
            self._settled_status = AdvisoryStatus.FAILED
            self.state.publish(
                is_loading=False,
                error=result.error.message,
                status=AdvisoryStatus.FAILED,
            )

    def clear_error(self) -> None:
        self.state.publish(error=None)

    def close(self) -> None:
        """Cancel any in-flight request; later refreshes do nothing."""
        self._closed = True
        self._generation += 1
        self._cancel_in_flight()
        if self.state["is_loading"].value:
            self.state.publish(is_loading=False, status=self._settled_status)
