"""Checker contract and the fixed catalog of account checks."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple

import boto3
from botocore.config import Config

from ..findings import Account, Finding
from ..utils import AssessmentCancelled, scoped_client

logger = logging.getLogger(__name__)


class SessionSource(Protocol):
    """Anything that can open a boto3 session, e.g. ``SessionCredentials``."""

    def session(self, region: str) -> boto3.session.Session: ...


@dataclass(frozen=True)
class CheckContext:
    """Read-only inputs handed to a checker for one account."""

    account: Account
    session: boto3.session.Session
    region: str
    client_config: Optional[Config] = None
    cancel_event: Optional[threading.Event] = None

    def client(self, service: str) -> AbstractContextManager[Any]:
        """Return a client for ``service`` that is closed when the block exits.

        Calls through the client raise :class:`AssessmentCancelled` once the
        run has been cancelled.
        """

        return scoped_client(
            self.session, service, self.region, self.client_config, self.cancel_event
        )


class BaseChecker(ABC):
    """Inspect one concern of one account and report a single :class:`Finding`.

    Subclasses implement :meth:`inspect`, recording signals on the finding
    through ``warn``/``fail``. An exception that escapes :meth:`inspect` is
    folded into the finding as a failure. The only exception :meth:`check`
    lets through is :class:`AssessmentCancelled`, raised when the run was
    cancelled while the check was still making AWS calls.
    """

    check_name: str = ""
    description: str = ""

    def check(
        self,
        account: Account,
        credentials: SessionSource,
        region: str,
        *,
        client_config: Optional[Config] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Finding:
        finding = Finding.for_account(self.check_name, account)
        try:
            ctx = CheckContext(
                account=account,
                session=credentials.session(region),
                region=region,
                client_config=client_config,
                cancel_event=cancel_event,
            )
            self.inspect(finding, ctx)
            if not finding.messages:
                finding.pass_()
        except AssessmentCancelled:
            raise
        except Exception as exc:
            logger.warning(
                "%s failed for account %s: %s", self.check_name, account.id, exc
            )
            finding.fail(f"Error checking {self.description}: {exc}")
        return finding

    @abstractmethod
    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        """Run the AWS calls for this check and record the outcome on ``finding``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.check_name!r})"


from .awsconfig import AwsConfigChecker  # noqa: E402
from .backup import BackupPoliciesChecker  # noqa: E402
from .billing import BillingAndBudgetsChecker  # noqa: E402
from .cloudtrail import CloudTrailConfigurationChecker  # noqa: E402
from .iac import IaCGovernanceChecker  # noqa: E402
from .iam import (  # noqa: E402
    CrossAccountTrustChecker,
    IamBaselineChecker,
    RootAccountHygieneChecker,
)
from .incident import IncidentReadinessChecker  # noqa: E402
from .kms import KmsBaselineChecker  # noqa: E402
from .monitoring import MonitoringAndAlertingChecker  # noqa: E402
from .network import NetworkBaselineChecker  # noqa: E402
from .organizations import OrgStructureChecker  # noqa: E402
from .s3 import S3BaselineChecker  # noqa: E402
from .security_services import SecurityServicesChecker  # noqa: E402
from .tagging import TaggingBaselineChecker  # noqa: E402

CHECKERS: Tuple[BaseChecker, ...] = (
    RootAccountHygieneChecker(),
    OrgStructureChecker(),
    IamBaselineChecker(),
    CrossAccountTrustChecker(),
    CloudTrailConfigurationChecker(),
    AwsConfigChecker(),
    SecurityServicesChecker(),
    S3BaselineChecker(),
    KmsBaselineChecker(),
    NetworkBaselineChecker(),
    MonitoringAndAlertingChecker(),
    BillingAndBudgetsChecker(),
    TaggingBaselineChecker(),
    BackupPoliciesChecker(),
    IaCGovernanceChecker(),
    IncidentReadinessChecker(),
)


def default_checkers() -> Tuple[BaseChecker, ...]:
    """Return the checker catalog in assessment order."""

    return CHECKERS


def get_checker(check_name: str) -> BaseChecker:
    key = check_name.strip().upper()
    for checker in CHECKERS:
        if checker.check_name == key:
            return checker
    valid = ", ".join(checker.check_name for checker in CHECKERS)
    raise KeyError(f"Unknown check '{check_name}'. Valid checks: {valid}")


__all__ = [
    "BaseChecker",
    "CHECKERS",
    "CheckContext",
    "SessionSource",
    "default_checkers",
    "get_checker",
]
