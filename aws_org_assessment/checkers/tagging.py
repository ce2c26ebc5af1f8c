"""Checks that resources carry the mandatory ownership tags."""
from __future__ import annotations

from ..findings import Finding
from ..utils import safe_paginate
from . import BaseChecker, CheckContext

REQUIRED_TAGS = ("Environment", "Owner", "Project")


class TaggingBaselineChecker(BaseChecker):
    check_name = "TAGGING"
    description = "tagging baseline"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        missing = 0
        with ctx.client("resourcegroupstaggingapi") as tagging:
            resources = safe_paginate(
                tagging,
                "get_resources",
                "ResourceTagMappingList",
                ResourcesPerPage=100,
            )
            for resource in resources:
                keys = {tag.get("Key") for tag in resource.get("Tags", [])}
                if any(required not in keys for required in REQUIRED_TAGS):
                    missing += 1
        if missing:
            finding.warn(f"{missing} resources missing mandatory tags")


__all__ = ["REQUIRED_TAGS", "TaggingBaselineChecker"]
