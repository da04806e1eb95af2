"""MCP Resources for exam and eligibility discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from compass.domains.admissions.domain_logic.exams import compatibility_table

if TYPE_CHECKING:
    from compass.core.tools.registry import ToolRegistry


def register_exam_resources(mcp: FastMCP, registry: ToolRegistry) -> None:
    """Register the exam compatibility resource on the MCP server."""

    @mcp.resource("compass://admissions/exams")
    def exam_compatibility_resource() -> str:
        """Which institutions admit through which entrance exam."""
        exams = compatibility_table()
        return json.dumps(
            {
                "domain": "admissions",
                "exam_count": len(exams),
                "exams": exams,
                "exam_gated_tools": sorted(registry.prediction_tools()),
            },
            indent=2,
        )
