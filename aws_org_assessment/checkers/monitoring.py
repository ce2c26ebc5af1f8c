"""Checks for CloudWatch alarms and log groups."""
from __future__ import annotations

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext

REQUIRED_ALARM_PATTERNS = ("unauthorized", "root", "guardduty")


class MonitoringAndAlertingChecker(BaseChecker):
    check_name = "MONITORING"
    description = "monitoring and alerting"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("cloudwatch") as cloudwatch:
            alarm_names = [
                alarm.get("AlarmName", "").lower()
                for alarm in safe_paginate(cloudwatch, "describe_alarms", "MetricAlarms")
            ]
        for pattern in REQUIRED_ALARM_PATTERNS:
            if not any(pattern in name for name in alarm_names):
                finding.warn(f"Missing recommended alarm pattern: {pattern}")

        with ctx.client("logs") as logs:
            has_log_groups = any(
                True for _ in safe_paginate(logs, "describe_log_groups", "logGroups")
            )
        if not has_log_groups:
            finding.warn("No CloudWatch LogGroups found")


__all__ = ["MonitoringAndAlertingChecker", "REQUIRED_ALARM_PATTERNS"]
