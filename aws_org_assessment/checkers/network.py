"""Checks for VPC network hygiene."""
from __future__ import annotations

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext

RECOMMENDED_ENDPOINTS = ("s3", "ssm")


class NetworkBaselineChecker(BaseChecker):
    check_name = "NETWORK_BASELINE"
    description = "network baseline"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("ec2") as ec2:
            vpcs = list(safe_paginate(ec2, "describe_vpcs", "Vpcs"))
            flow_logs = list(safe_paginate(ec2, "describe_flow_logs", "FlowLogs"))
            endpoints = list(safe_paginate(ec2, "describe_vpc_endpoints", "VpcEndpoints"))

        if any(vpc.get("IsDefault") for vpc in vpcs):
            finding.warn("Default VPC exists in account")
        if not flow_logs:
            finding.warn("VPC Flow Logs not enabled")

        services = [endpoint.get("ServiceName", "") for endpoint in endpoints]
        for service in RECOMMENDED_ENDPOINTS:
            if not any(service in name for name in services):
                finding.warn(f"Recommended VPC endpoint for {service.upper()} missing")


__all__ = ["NetworkBaselineChecker"]
