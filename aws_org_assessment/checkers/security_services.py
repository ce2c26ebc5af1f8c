"""Checks that the managed detection services are switched on."""
from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import error_code, safe_paginate
from . import BaseChecker, CheckContext

INSPECTOR_SCAN_TYPES = ("ec2", "ecr", "lambda")


class SecurityServicesChecker(BaseChecker):
    check_name = "SECURITY_SERVICES"
    description = "security services"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        self._check_guardduty(finding, ctx)
        self._check_security_hub(finding, ctx)
        self._check_access_analyzer(finding, ctx)
        self._check_inspector(finding, ctx)

    @staticmethod
    def _check_guardduty(finding: Finding, ctx: CheckContext) -> None:
        try:
            with ctx.client("guardduty") as guardduty:
                detectors = list(safe_paginate(guardduty, "list_detectors", "DetectorIds"))
        except (ClientError, BotoCoreError) as exc:
            finding.warn(f"GuardDuty check failed: {exc}")
            return
        if not detectors:
            finding.warn("GuardDuty not enabled")

    @staticmethod
    def _check_security_hub(finding: Finding, ctx: CheckContext) -> None:
        try:
            with ctx.client("securityhub") as securityhub:
                securityhub.describe_hub()
        except ClientError as exc:
            if error_code(exc) == "InvalidAccessException":
                finding.warn("Security Hub not enabled")
            else:
                finding.warn(f"Security Hub check failed: {exc}")
        except BotoCoreError as exc:
            finding.warn(f"Security Hub check failed: {exc}")

    @staticmethod
    def _check_access_analyzer(finding: Finding, ctx: CheckContext) -> None:
        try:
            with ctx.client("accessanalyzer") as analyzer:
                analyzers = list(safe_paginate(analyzer, "list_analyzers", "analyzers"))
        except (ClientError, BotoCoreError) as exc:
            finding.warn(f"IAM Access Analyzer check failed: {exc}")
            return
        if not any(item.get("status") == "ACTIVE" for item in analyzers):
            finding.warn("IAM Access Analyzer not enabled")

    @staticmethod
    def _check_inspector(finding: Finding, ctx: CheckContext) -> None:
        try:
            with ctx.client("inspector2") as inspector:
                response = inspector.batch_get_account_status(accountIds=[ctx.account.id])
        except (ClientError, BotoCoreError) as exc:
            finding.warn(f"Inspector check failed: {exc}")
            return
        accounts = response.get("accounts", [])
        if not accounts:
            finding.warn("Inspector status check - verify manually")
            return
        resources = accounts[0].get("resourceState", {})
        disabled = [
            scan_type
            for scan_type in INSPECTOR_SCAN_TYPES
            if resources.get(scan_type, {}).get("status") != "ENABLED"
        ]
        if disabled:
            finding.warn(f"Inspector scanning not enabled for: {', '.join(disabled)}")


__all__ = ["SecurityServicesChecker"]
