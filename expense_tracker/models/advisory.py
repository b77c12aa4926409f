"""
Advisory Models

Types exchanged with the AI advisor:
- FinancialSnapshot: the bounded extract of ledger state sent in the prompt
- AdvisoryText: the parsed two-part answer
- AdvisoryError: a classified failure, built where the failure happens
- CompletionResult / AnalysisResult: success-or-error values

DESIGN DECISION: Failures are returned as values, not raised.
The transport that sees a socket error builds a NETWORK error; the code
that fails to read the JSON envelope builds a RESPONSE_FORMAT error.
Nobody guesses the kind later from an exception class.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.money import Money


class SnapshotTransaction(BaseModel):
    """A transaction reduced to what the advisor needs."""
    model_config = ConfigDict(frozen=True)

    amount: Money
    type_label: str
    category_name: str
    remark: Optional[str] = None


class SnapshotAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    balance: Money


class FinancialSnapshot(BaseModel):
    """
    Immutable, bounded view of the current month.

    Built from ledger queries and aggregates only; holds no entity objects.
    """
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    monthly_expense: Money
    monthly_income: Money
    recent_transactions: tuple[SnapshotTransaction, ...] = ()
    accounts: tuple[SnapshotAccount, ...] = ()

    def to_prompt_data(self) -> dict:
        """
        JSON-ready data block for the prompt.

        Amounts are converted to major units here, at the display boundary.
        """
        return {
            "monthly_expense": float(self.monthly_expense.to_major()),
            "monthly_income": float(self.monthly_income.to_major()),
            "recent_transactions": [
                {
                    "amount": float(t.amount.to_major()),
                    "type": t.type_label,
                    "category": t.category_name,
                    "remark": t.remark or "",
                }
                for t in self.recent_transactions
            ],
            "accounts": [
                {
                    "name": a.name,
                    "balance": float(a.balance.to_major()),
                }
                for a in self.accounts
            ],
        }


class AdvisoryText(BaseModel):
    """The advisor's answer: a one-sentence insight and a longer report."""
    model_config = ConfigDict(frozen=True)

    insight: str
    report: str = ""


class AdvisoryErrorKind(str, Enum):
    NETWORK = "network"
    RESPONSE_FORMAT = "response_format"
    UNKNOWN = "unknown"


# One user-facing template per kind
ERROR_MESSAGE_TEMPLATES = {
    AdvisoryErrorKind.NETWORK: (
        "Network connection error, please check your network settings.\n"
        "Details: {detail}"
    ),
    AdvisoryErrorKind.RESPONSE_FORMAT: (
        "Could not parse the advisor response, the API format may have changed.\n"
        "Details: {detail}"
    ),
    AdvisoryErrorKind.UNKNOWN: (
        "An unknown error occurred, please try again later.\n"
        "Details: {detail}"
    ),
}


class AdvisoryError(BaseModel):
    """A classified advisory failure."""
    model_config = ConfigDict(frozen=True)

    kind: AdvisoryErrorKind
    detail: str = ""

    @classmethod
    def network(cls, detail: str) -> "AdvisoryError":
        return cls(kind=AdvisoryErrorKind.NETWORK, detail=detail)

    @classmethod
    def response_format(cls, detail: str) -> "AdvisoryError":
        return cls(kind=AdvisoryErrorKind.RESPONSE_FORMAT, detail=detail)

    @classmethod
    def unknown(cls, detail: str) -> "AdvisoryError":
        return cls(kind=AdvisoryErrorKind.UNKNOWN, detail=detail)

    @property
    def message(self) -> str:
        """User-facing message for this failure."""
        return ERROR_MESSAGE_TEMPLATES[self.kind].format(detail=self.detail)


class CompletionResult(BaseModel):
    """Raw text from a completion transport, or the reason there is none."""
    model_config = ConfigDict(frozen=True)

    content: Optional[str] = None
    error: Optional[AdvisoryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, content: str) -> "CompletionResult":
        return cls(content=content)

    @classmethod
    def failure(cls, error: AdvisoryError) -> "CompletionResult":
        return cls(error=error)


class AnalysisResult(BaseModel):
    """Parsed advisory text, or the classified failure."""
    model_config = ConfigDict(frozen=True)

    advisory: Optional[AdvisoryText] = None
    error: Optional[AdvisoryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, advisory: AdvisoryText) -> "AnalysisResult":
        return cls(advisory=advisory)

    @classmethod
    def failure(cls, error: AdvisoryError) -> "AnalysisResult":
        return cls(error=error)


class AdvisoryStatus(str, Enum):
    """States of the advisory refresh cycle."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"
