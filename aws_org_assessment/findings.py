"""Data models for organization accounts and assessment findings."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

ASSESSMENT_ERROR = "ASSESSMENT_ERROR"
DEFAULT_PASS_MESSAGE = "Check passed"


class FindingStatus(str, Enum):
    """Outcome of a single check, ordered ``PASS < WARN < FAIL``."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def __str__(self) -> str:
        return self.value


_STATUS_RANK = {FindingStatus.PASS: 0, FindingStatus.WARN: 1, FindingStatus.FAIL: 2}


class AccountStatus(str, Enum):
    """Membership state reported by AWS Organizations."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING_CLOSURE = "PENDING_CLOSURE"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: str | None) -> "AccountStatus":
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Account:
    """A member account of the organization being assessed."""

    id: str
    name: str
    email: str = ""
    status: AccountStatus = AccountStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE

    def label(self) -> str:
        return f"{self.name} ({self.id})"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Finding:
    """Status and message trail produced by one checker for one account.

    The status only moves upward through ``warn`` and ``fail``. ``pass_``
    is the exception: it resets the status to PASS even after a warning or
    failure has been recorded, so checkers call it only when nothing was
    flagged.
    """

    account_id: str
    account_name: str
    check_name: str
    status: FindingStatus = FindingStatus.PASS
    messages: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def for_account(cls, check_name: str, account: Account) -> "Finding":
        """Return a fresh PASS finding for ``check_name`` against ``account``."""

        return cls(account_id=account.id, account_name=account.name, check_name=check_name)

    def fail(self, message: str) -> None:
        self.status = FindingStatus.FAIL
        self.messages.append(message)

    def warn(self, message: str) -> None:
        if self.status is not FindingStatus.FAIL:
            self.status = FindingStatus.WARN
        self.messages.append(message)

    def pass_(self) -> None:
        self.status = FindingStatus.PASS
        if not self.messages:
            self.messages.append(DEFAULT_PASS_MESSAGE)

    def key(self) -> str:
        """Stable identifier for the (account, check) pair."""

        return f"{self.account_id}:{self.check_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "check_name": self.check_name,
            "status": self.status.value,
            "messages": list(self.messages),
            "timestamp": self.timestamp.isoformat(),
        }


def error_finding(account_id: str, account_name: str, message: str) -> Finding:
    """Create the synthetic FAIL finding that stands in for an unrunnable scope."""

    finding = Finding(
        account_id=account_id,
        account_name=account_name,
        check_name=ASSESSMENT_ERROR,
    )
    finding.fail(message)
    return finding


__all__ = [
    "ASSESSMENT_ERROR",
    "Account",
    "AccountStatus",
    "DEFAULT_PASS_MESSAGE",
    "Finding",
    "FindingStatus",
    "error_finding",
]
