"""Checks for AWS Budgets coverage."""
from __future__ import annotations

from botocore.exceptions import ClientError

from ..findings import Finding
from ..utils import error_code, safe_paginate
from . import BaseChecker, CheckContext


class BillingAndBudgetsChecker(BaseChecker):
    check_name = "BILLING"
    description = "billing and budgets"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("budgets") as budgets:
            try:
                items = list(
                    safe_paginate(
                        budgets, "describe_budgets", "Budgets", AccountId=ctx.account.id
                    )
                )
            except ClientError as exc:
                # Budgets reports an empty account as NotFoundException.
                if error_code(exc) != "NotFoundException":
                    raise
                items = []
        if not items:
            finding.warn("No AWS Budgets configured")
        finding.warn("Billing access permissions check - verify manually")


__all__ = ["BillingAndBudgetsChecker"]
