"""Checks for AWS Backup plans and vaults."""
from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext


class BackupPoliciesChecker(BaseChecker):
    check_name = "BACKUP"
    description = "backup policies"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("backup") as backup:
            plans = list(safe_paginate(backup, "list_backup_plans", "BackupPlansList"))
            if not plans:
                finding.warn("No backup plans configured")

            for vault in safe_paginate(backup, "list_backup_vaults", "BackupVaultList"):
                name = vault.get("BackupVaultName", "")
                try:
                    details = backup.describe_backup_vault(BackupVaultName=name)
                except (ClientError, BotoCoreError) as exc:
                    finding.warn(
                        f"Could not verify encryption for backup vault '{name}': {exc}"
                    )
                    continue
                if not details.get("EncryptionKeyArn"):
                    finding.warn(f"Backup vault '{name}' has no encryption key")


__all__ = ["BackupPoliciesChecker"]
