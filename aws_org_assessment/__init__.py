"""Security posture assessment across every account of an AWS Organization."""

from __future__ import annotations

from .config import AssessmentConfig, AwsCredentials, ConfigurationError
from .core import AssessmentResults, Progress, print_findings, run_assessment
from .credentials import RoleAssumptionError, SessionCredentials, assume_audit_role
from .discovery import DiscoveryError, discover_accounts
from .engine import CheckExecutionEngine, run_all_checks
from .findings import ASSESSMENT_ERROR, Account, AccountStatus, Finding, FindingStatus

__all__ = [
    "ASSESSMENT_ERROR",
    "Account",
    "AccountStatus",
    "AssessmentConfig",
    "AssessmentResults",
    "AwsCredentials",
    "CheckExecutionEngine",
    "ConfigurationError",
    "DiscoveryError",
    "Finding",
    "FindingStatus",
    "Progress",
    "RoleAssumptionError",
    "SessionCredentials",
    "assume_audit_role",
    "discover_accounts",
    "print_findings",
    "run_all_checks",
    "run_assessment",
]
