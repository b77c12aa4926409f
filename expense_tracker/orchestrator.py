"""
Application Wiring for the Expense Tracker

This module ties together all the components:
1. Ledger store (canonical state, write-through persistence)
2. Aggregation engine and home/day projections (what the screens show)
3. Advisory client and projection (AI analysis of the current month)

DESIGN DECISION: Components are injected explicitly. There are no
module-level singletons; tests build an app around in-memory storage,
a fixed clock and a mocked transport.
"""

from datetime import date, datetime
from typing import Callable, Optional

import structlog

from expense_tracker.advisory import (
    AdvisoryClient,
    AdvisoryProjection,
    CompletionTransport,
    create_transport,
)
from expense_tracker.aggregation import AggregationEngine
from expense_tracker.audit import AuditLogger
from expense_tracker.config import Settings, get_settings
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.projection import DayProjection, HomeProjection
from expense_tracker.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)

logger = structlog.get_logger(__name__)


class ExpenseTrackerApp:
    """
    Owns one instance of every component and their lifecycle.

    Flow:
    1. start() → open the store, seed reference data, load the home view
    2. screens read projection slots and call projection operations
    3. shutdown() → cancel advisory work, close the transport, detach views
    """

    def __init__(
        self,
        store: LedgerStore,
        engine: AggregationEngine,
        home: HomeProjection,
        advisory_client: AdvisoryClient,
        advisory: AdvisoryProjection,
        seed_defaults: bool = True,
        locale: str = "zh_CN",
    ):
        self.store = store
        self.engine = engine
        self.home = home
        self.advisory_client = advisory_client
        self.advisory = advisory
        self._seed_defaults = seed_defaults
        self._locale = locale
        self._day_views: list[DayProjection] = []
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        await self.store.open()
        if self._seed_defaults:
            await self.store.seed_defaults()
        await self.home.load()
        self._started = True
        logger.info("app_started", version=self.store.version)

    def open_day(self, day: date) -> DayProjection:
        """A live view of one date; closed together with the app."""
        view = DayProjection(self.store, self.engine, day, self._locale)
        self._day_views.append(view)
        return view

    async def shutdown(self) -> None:
        self.advisory.close()
        await self.advisory_client.aclose()
        for view in self._day_views:
            view.close()
        self._day_views.clear()
        self.home.close()
        self._started = False
        logger.info("app_stopped")


def _create_storage(
    settings: Settings,
) -> tuple[LedgerStorageInterface, Optional[AuditStorageInterface]]:
    if settings.ledger.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        return (
            GoogleSheetsLedgerStorage(sheets_client),
            GoogleSheetsAuditStorage(sheets_client),
        )
    return InMemoryLedgerStorage(), None


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[LedgerStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    transport: Optional[CompletionTransport] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ExpenseTrackerApp:
    """
    Factory function to create all application components.

    Args:
        settings: Configuration; defaults to get_settings()
        storage: Ledger backend; defaults to LEDGER_STORAGE_BACKEND
        audit_storage: Audit backend; local-only logging if None
        transport: Advisory transport; defaults to ADVISOR_PROVIDER
        clock: Source of "now"; defaults to the wall clock
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger
    advisor_settings = settings.advisor

    if storage is None:
        storage, default_audit_storage = _create_storage(settings)
        audit_storage = audit_storage or default_audit_storage

    audit_logger = AuditLogger(audit_storage)
    store = LedgerStore(storage, ledger_settings.tzinfo, audit_logger, clock=clock)
    engine = AggregationEngine(store)
    home = HomeProjection(
        store,
        engine,
        ledger_settings.recent_transactions_limit,
        locale=ledger_settings.locale,
    )

    advisory_client = AdvisoryClient(
        store,
        engine,
        transport or create_transport(advisor_settings),
        settings=advisor_settings,
        audit_logger=audit_logger,
    )
    advisory = AdvisoryProjection(advisory_client)

    return ExpenseTrackerApp(
        store=store,
        engine=engine,
        home=home,
        advisory_client=advisory_client,
        advisory=advisory,
        seed_defaults=ledger_settings.seed_defaults,
        locale=ledger_settings.locale,
    )
