"""Concurrent execution of the checker catalog against one account."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from botocore.config import Config

from .checkers import BaseChecker, default_checkers
from .config import AssessmentConfig, AwsCredentials, ConfigurationError, client_config
from .credentials import RoleAssumptionError, SessionCredentials, assume_audit_role
from .findings import Account, Finding, error_finding
from .utils import AssessmentCancelled

logger = logging.getLogger(__name__)

RoleAssumer = Callable[..., SessionCredentials]

# How often a waiting engine re-checks the cancellation event.
_POLL_INTERVAL = 0.25


class EngineState(str, Enum):
    START = "START"
    ROLE_ASSUMED = "ROLE_ASSUMED"
    CHECKS_RUNNING = "CHECKS_RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"


class CheckExecutionEngine:
    """Assume the audit role of an account and run every checker against it.

    Checkers run concurrently on a thread pool and the engine waits for all of
    them before returning. Each checker produces exactly one finding; a
    fault inside one checker becomes that checker's FAIL finding and never
    affects its siblings.
    """

    def __init__(
        self,
        config: AssessmentConfig,
        checkers: Optional[Sequence[BaseChecker]] = None,
        *,
        assume_role: RoleAssumer = assume_audit_role,
    ) -> None:
        self.config = config
        self.checkers: Sequence[BaseChecker] = tuple(
            checkers if checkers is not None else default_checkers()
        )
        self._assume_role = assume_role
        self._client_config = client_config(config)
        self.state = EngineState.START

    def run_all_checks(
        self,
        account: Account,
        base_credentials: AwsCredentials,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[Finding]:
        """Return one finding per checker for ``account``.

        When the audit role cannot be assumed a single ``ASSESSMENT_ERROR``
        finding is returned instead and no checker runs.
        """

        self.state = EngineState.START
        try:
            session_credentials = self._assume_role(
                self.config.audit_role_template,
                base_credentials,
                account.id,
                duration_seconds=self.config.session_duration_seconds,
                client_config=self._client_config,
            )
        except (RoleAssumptionError, ConfigurationError) as exc:
            logger.error("Skipping account %s: %s", account.label(), exc)
            return self._error(account, exc)
        except Exception as exc:
            logger.exception(
                "Unexpected error assuming role for account %s", account.label()
            )
            return self._error(account, exc)

        self.state = EngineState.ROLE_ASSUMED
        region = self.config.region_for(base_credentials)
        findings = self._fan_out(account, session_credentials, region, cancel_event)
        self.state = EngineState.DONE
        return findings

    def _error(self, account: Account, exc: Exception) -> List[Finding]:
        self.state = EngineState.ERROR
        return [error_finding(account.id, account.name, f"Failed to assess account: {exc}")]

    def _fan_out(
        self,
        account: Account,
        session_credentials: SessionCredentials,
        region: str,
        cancel_event: Optional[threading.Event],
    ) -> List[Finding]:
        self.state = EngineState.CHECKS_RUNNING
        if not self.checkers:
            return []

        findings: List[Finding] = []
        lock = threading.Lock()
        max_workers = self.config.max_workers or len(self.checkers)

        def run(checker: BaseChecker) -> Optional[Finding]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            try:
                finding = _run_isolated(
                    checker,
                    account,
                    session_credentials,
                    region,
                    self._client_config,
                    cancel_event,
                )
            except AssessmentCancelled:
                logger.info(
                    "%s interrupted for account %s", checker.check_name, account.id
                )
                return None
            with lock:
                findings.append(finding)
            return finding

        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"checks-{account.id}"
        ) as executor:
            futures: Dict[Future, BaseChecker] = {
                executor.submit(run, checker): checker for checker in self.checkers
            }
            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                if cancel_event is not None and cancel_event.is_set():
                    for future in pending:
                        future.cancel()
                for future in done:
                    if future.cancelled():
                        continue
                    exc = future.exception()
                    if exc is not None:
                        checker = futures[future]
                        with lock:
                            findings.append(_fault_finding(checker, account, exc))

        skipped = len(self.checkers) - len(findings)
        if skipped:
            logger.warning(
                "Assessment cancelled: %d checks not completed for account %s",
                skipped,
                account.label(),
            )
        return findings


def _run_isolated(
    checker: BaseChecker,
    account: Account,
    credentials: SessionCredentials,
    region: str,
    config: Optional[Config],
    cancel_event: Optional[threading.Event] = None,
) -> Finding:
    try:
        return checker.check(
            account, credentials, region, client_config=config, cancel_event=cancel_event
        )
    except AssessmentCancelled:
        raise
    except Exception as exc:  # checker broke its never-raise contract
        return _fault_finding(checker, account, exc)


def _fault_finding(checker: BaseChecker, account: Account, exc: BaseException) -> Finding:
    logger.error("Checker %s raised for account %s: %s", checker.check_name, account.id, exc)
    finding = Finding.for_account(checker.check_name, account)
    finding.fail(f"Error checking {checker.description or checker.check_name}: {exc}")
    return finding


def run_all_checks(
    account: Account,
    base_credentials: AwsCredentials,
    config: AssessmentConfig,
    checkers: Optional[Sequence[BaseChecker]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[Finding]:
    """Convenience wrapper around :meth:`CheckExecutionEngine.run_all_checks`."""

    engine = CheckExecutionEngine(config, checkers)
    return engine.run_all_checks(account, base_credentials, cancel_event)


__all__ = ["CheckExecutionEngine", "EngineState", "run_all_checks"]
