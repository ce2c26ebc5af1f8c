"""Incident response readiness, which can only be confirmed out of band."""
from __future__ import annotations

from ..findings import Finding
from . import BaseChecker, CheckContext


class IncidentReadinessChecker(BaseChecker):
    check_name = "INCIDENT_READINESS"
    description = "incident readiness"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        finding.warn("Incident response runbooks - verify manually")
        finding.warn("Incident response testing - verify manually")


__all__ = ["IncidentReadinessChecker"]
