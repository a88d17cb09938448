"""AI agents package."""

from finmind.agents.advisor_agent import (
    AdviceGenerator,
    AdviceGeneratorError,
    AdvisorAgent,
    build_advice_prompt,
)

__all__ = [
    "AdviceGenerator",
    "AdviceGeneratorError",
    "AdvisorAgent",
    "build_advice_prompt",
]
