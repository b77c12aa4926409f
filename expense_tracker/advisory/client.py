"""
AI Advisory Client

Turns the current month into a FinancialSnapshot, asks the advisor for
an analysis and parses the two-part answer.

CRITICAL BOUNDARIES:
- The advisor only ever sees the snapshot, never entity objects
- The snapshot is bounded (max_snapshot_transactions most recent entries)
- Failures come back as AnalysisResult values; nothing is raised to callers
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.advisory.prompt import build_analysis_prompt
from expense_tracker.advisory.transport import CompletionTransport
from expense_tracker.aggregation import AggregationEngine
from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import AdvisorSettings, get_settings
from expense_tracker.ledger.periods import month_bounds
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.advisory import (
    AdvisoryError,
    AdvisoryText,
    AnalysisResult,
    FinancialSnapshot,
    SnapshotAccount,
    SnapshotTransaction,
)

logger = structlog.get_logger(__name__)

UNKNOWN_CATEGORY = "unknown"
SECTION_SEPARATOR = "\n\n"


def parse_response(raw: str) -> AdvisoryText:
    """
    Split the advisor's text into insight and report.

    Surrounding whitespace is trimmed, then the text is split on the
    first blank line. Without one, the whole text is the insight.
    """
    text = raw.strip()
    insight, separator, report = text.partition(SECTION_SEPARATOR)
    if not separator:
        return AdvisoryText(insight=text, report="")
    return AdvisoryText(insight=insight, report=report)


class AdvisoryClient:
    """Builds snapshots and requests analyses through a CompletionTransport."""

    def __init__(
        self,
        store: LedgerStore,
        engine: AggregationEngine,
        transport: CompletionTransport,
        settings: Optional[AdvisorSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._engine = engine
        self._transport = transport
        self._settings = settings or get_settings().advisor
        self._audit_logger = audit_logger

    @property
    def transport(self) -> CompletionTransport:
        return self._transport

    def build_snapshot(self) -> FinancialSnapshot:
        """The current month: totals, recent transactions and all accounts."""
        year, month = self._store.current_month()
        stats = self._engine.compute_monthly_stats(year, month)

        transactions = self._store.get_transactions_by_period(
            *month_bounds(year, month, self._store.tz)
        )[:self._settings.max_snapshot_transactions]

        recent = []
        for t in transactions:
            category = self._store.get_category_by_id(t.category_id)
            recent.append(SnapshotTransaction(
                amount=t.amount,
                type_label=t.type.label,
                category_name=category.name if category else UNKNOWN_CATEGORY,
                remark=t.remark,
            ))

        accounts = tuple(
            SnapshotAccount(name=a.name, balance=a.balance)
            for a in self._store.get_all_accounts()
        )

        return FinancialSnapshot(
            year=year,
            month=month,
            monthly_expense=stats.expense,
            monthly_income=stats.income,
            recent_transactions=tuple(recent),
            accounts=accounts,
        )

    async def request_analysis(
        self,
        snapshot: FinancialSnapshot,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisResult:
        """
        Send the snapshot to the advisor.

        Bounded by ADVISOR_TIMEOUT_SECONDS; a timeout is a NETWORK error and
        anything the transport raises is an UNKNOWN error.
        """
        correlation_id = correlation_id or create_correlation_id()
        prompt = build_analysis_prompt(snapshot, self._settings.response_language)

        if self._audit_logger:
            await self._audit_logger.log_analysis_requested(
                transaction_count=len(snapshot.recent_transactions),
                correlation_id=correlation_id,
            )

        try:
            completion = await asyncio.wait_for(
                self._transport.complete(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            error = AdvisoryError.network(
                f"No response within {self._settings.timeout_seconds:g} seconds"
            )
        except Exception as e:
            logger.exception("transport_crashed", correlation_id=str(correlation_id))
            error = AdvisoryError.unknown(str(e) or type(e).__name__)
        else:
            error = completion.error

        if error is not None:
            return await self._failed(error, correlation_id)

        advisory = parse_response(completion.content or "")
        logger.info(
            "analysis_completed",
            correlation_id=str(correlation_id),
            insight_length=len(advisory.insight),
            report_length=len(advisory.report),
        )
        if self._audit_logger:
            await self._audit_logger.log_analysis_completed(
                insight_length=len(advisory.insight),
                report_length=len(advisory.report),
                correlation_id=correlation_id,
            )
        return AnalysisResult.success(advisory)

    async def analyze(self) -> AnalysisResult:
        """Snapshot the current month and request an analysis."""
        correlation_id = create_correlation_id()
        try:
            snapshot = self.build_snapshot()
            return await self.request_analysis(snapshot, correlation_id)
        except Exception as e:
            logger.exception("analysis_crashed", correlation_id=str(correlation_id))
            return await self._failed(AdvisoryError.unknown(str(e)), correlation_id)

    async def _failed(self, error: AdvisoryError, correlation_id: UUID) -> AnalysisResult:
        logger.warning(
            "analysis_failed",
            correlation_id=str(correlation_id),
            kind=error.kind.value,
            detail=error.detail,
        )
        if self._audit_logger:
            await self._audit_logger.log_analysis_failed(
                error_kind=error.kind.value,
                error_message=error.detail,
                correlation_id=correlation_id,
            )
        return AnalysisResult.failure(error)

    async def aclose(self) -> None:
        await self._transport.aclose()
