"""Checks for CloudFormation based infrastructure governance."""
from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext

DRIFTED = "DRIFTED"


class IaCGovernanceChecker(BaseChecker):
    check_name = "IAC_GOVERNANCE"
    description = "IaC governance"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("cloudformation") as cfn:
            stacks = list(safe_paginate(cfn, "describe_stacks", "Stacks"))
            drifted = [
                stack.get("StackName", "")
                for stack in stacks
                if stack.get("DriftInformation", {}).get("StackDriftStatus") == DRIFTED
            ]
            for name in drifted:
                finding.warn(f"CloudFormation stack '{name}' has drifted")
            finding.warn("Drift detection status - verify per stack")

            try:
                stack_sets = list(safe_paginate(cfn, "list_stack_sets", "Summaries"))
            except (ClientError, BotoCoreError) as exc:
                finding.warn(
                    "Could not check StackSets - may require organization-level "
                    f"permissions: {exc}"
                )
            else:
                if not stack_sets:
                    finding.warn("No organization-wide StackSets configured")


__all__ = ["IaCGovernanceChecker"]
