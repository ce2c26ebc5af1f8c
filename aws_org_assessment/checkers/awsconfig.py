"""Checks for AWS Config recording and aggregation."""
from __future__ import annotations

from ..findings import Finding
from . import BaseChecker, CheckContext


class AwsConfigChecker(BaseChecker):
    check_name = "AWS_CONFIG"
    description = "AWS Config"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("config") as config:
            recorders = config.describe_configuration_recorders().get(
                "ConfigurationRecorders", []
            )
            if not recorders:
                finding.fail("AWS Config recorder disabled")
            else:
                statuses = config.describe_configuration_recorder_status().get(
                    "ConfigurationRecordersStatus", []
                )
                stopped = [s.get("name", "") for s in statuses if not s.get("recording")]
                for name in stopped:
                    finding.warn(f"AWS Config recorder '{name}' is not recording")

            aggregators = config.describe_configuration_aggregators().get(
                "ConfigurationAggregators", []
            )
            if not aggregators:
                finding.warn("No Config aggregator set up")


__all__ = ["AwsConfigChecker"]
