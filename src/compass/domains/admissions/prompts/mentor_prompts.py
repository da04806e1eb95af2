"""MCP Prompts: pre-built interaction templates for admissions journeys."""

from __future__ import annotations

from fastmcp import FastMCP


def register_mentor_prompts(mcp: FastMCP) -> None:
    """Register admissions MCP prompts."""

    @mcp.prompt()
    def college_prediction_prompt(
        exam: str,
        rank: int,
        category: str = "General",
        home_state: str = "",
    ) -> str:
        """Prompt template for predicting colleges from an exam rank."""
        state_line = f" I'm from {home_state}." if home_state else ""
        return f"""My {exam} rank is {rank} and my category is {category}.{state_line}

Please:
1. Show me Safe, Moderate and Ambitious colleges for this rank
2. Only include colleges that actually admit through {exam}
3. Explain what my chances look like at each one
4. Suggest how I should order my counseling preferences

Be honest about my chances, but keep it encouraging."""

    @mcp.prompt()
    def college_comparison_prompt(colleges: str) -> str:
        """Prompt template for comparing two to four colleges side by side."""
        return f"""I'm trying to decide between these colleges: {colleges}.

Please compare:
1. Their NIRF rankings and reputation
2. Annual fees
3. The branches they offer
4. Which exams they admit through

Then tell me which questions I should ask myself to choose between them."""
