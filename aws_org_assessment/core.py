"""Organization-wide assessment orchestration."""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .config import AssessmentConfig, AwsCredentials, client_config
from .discovery import DiscoveryError, discover_accounts
from .engine import CheckExecutionEngine
from .findings import Account, Finding, FindingStatus, error_finding

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Progress:
    """Snapshot emitted after each account has been assessed."""

    accounts_processed: int
    total_accounts: int
    findings_so_far: int
    account: Optional[Account] = None


ProgressCallback = Callable[[Progress], None]
Discoverer = Callable[..., List[Account]]


@dataclass
class AssessmentResults:
    """Findings and terminal status of a full assessment run."""

    findings: List[Finding] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)
    status_message: str = ""
    completed: bool = False
    error: Optional[str] = None

    def findings_for(self, account_id: str) -> List[Finding]:
        return [finding for finding in self.findings if finding.account_id == account_id]


def run_assessment(
    base_credentials: AwsCredentials,
    config: AssessmentConfig,
    *,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    engine: Optional[CheckExecutionEngine] = None,
    discover: Discoverer = discover_accounts,
) -> AssessmentResults:
    """Discover every active account and run the checker catalog against each.

    Accounts are processed one after another; checks within an account run
    concurrently. AWS errors never escape: a discovery failure is reported as
    a single ``ASSESSMENT_ERROR`` finding and a failed role assumption only
    affects its own account.
    """

    cancel_event = cancel_event or threading.Event()
    engine = engine or CheckExecutionEngine(config)
    results = AssessmentResults()

    timer: Optional[threading.Timer] = None
    if config.deadline_seconds:
        timer = threading.Timer(config.deadline_seconds, cancel_event.set)
        timer.daemon = True
        timer.start()

    try:
        logger.info("Discovering AWS Organization accounts...")
        try:
            accounts = discover(base_credentials, client_config=client_config(config))
        except DiscoveryError as exc:
            logger.error("%s", exc)
            return _discovery_failed(results, exc)
        except Exception as exc:
            logger.exception("Unexpected error during account discovery")
            return _discovery_failed(results, exc)

        results.accounts = list(accounts)
        total = len(accounts)
        processed = 0
        for index, account in enumerate(accounts, start=1):
            if cancel_event.is_set():
                break
            logger.info("Assessing account %d/%d: %s", index, total, account.label())
            results.findings.extend(
                engine.run_all_checks(account, base_credentials, cancel_event)
            )
            processed = index
            _notify(
                on_progress,
                Progress(
                    accounts_processed=processed,
                    total_accounts=total,
                    findings_so_far=len(results.findings),
                    account=account,
                ),
            )

        if cancel_event.is_set():
            results.error = "cancelled"
            results.status_message = (
                f"Assessment cancelled after {processed}/{total} accounts. "
                f"Found {len(results.findings)} findings."
            )
        else:
            results.completed = True
            results.status_message = (
                f"Assessment complete. Found {len(results.findings)} findings "
                f"across {total} accounts."
            )
        logger.info("%s", results.status_message)
        return results
    finally:
        if timer is not None:
            timer.cancel()


def _discovery_failed(results: AssessmentResults, exc: Exception) -> AssessmentResults:
    results.error = str(exc)
    results.findings.append(error_finding(NOT_AVAILABLE, NOT_AVAILABLE, f"Error: {exc}"))
    results.status_message = f"Assessment failed: {exc}"
    return results


def _notify(callback: Optional[ProgressCallback], progress: Progress) -> None:
    if callback is None:
        return
    try:
        callback(progress)
    except Exception:
        logger.exception("Progress observer raised; continuing assessment")


def summarize(findings: Iterable[Finding]) -> Dict[str, int]:
    """Return the number of findings per status."""

    counts = Counter(finding.status for finding in findings)
    return {status.value: counts.get(status, 0) for status in FindingStatus}


def print_findings(findings: Iterable[Finding]) -> None:
    """Pretty-print findings to stdout."""

    findings = list(findings)
    if not findings:
        print("No findings recorded.")
        return

    header = f"{'Account':<14} {'Status':<6} {'Check':<20} Details"
    print(header)
    print("-" * len(header))
    for finding in findings:
        details = "; ".join(finding.messages)
        if len(details) > 100:
            details = details[:97] + "..."
        print(f"{finding.account_id:<14} {finding.status.value:<6} {finding.check_name:<20} {details}")


__all__ = [
    "AssessmentResults",
    "Progress",
    "print_findings",
    "run_assessment",
    "summarize",
]
