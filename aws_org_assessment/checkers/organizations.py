"""Checks for the account's placement in AWS Organizations."""
from __future__ import annotations

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext

SCP_FILTER = "SERVICE_CONTROL_POLICY"


class OrgStructureChecker(BaseChecker):
    check_name = "ORG_STRUCTURE"
    description = "org structure"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("organizations") as org:
            scps = list(
                safe_paginate(
                    org,
                    "list_policies_for_target",
                    "Policies",
                    TargetId=ctx.account.id,
                    Filter=SCP_FILTER,
                )
            )
            if not scps:
                finding.warn("No SCPs attached to account")

            parents = list(
                safe_paginate(org, "list_parents", "Parents", ChildId=ctx.account.id)
            )
        if any(parent.get("Type") == "ROOT" for parent in parents):
            finding.warn("Account is attached directly to the organization root, not an OU")


__all__ = ["OrgStructureChecker"]
