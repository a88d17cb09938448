"""
AI Advisor Agent for FinMind

DESIGN DECISION: The LLM is a NARRATOR, not an ORACLE.

CRITICAL BOUNDARIES:
- CAN: Turn an already computed metrics snapshot and rule findings into
  a few sentences of plain-language advice
- CANNOT: See raw transactions, balances or account details
- CANNOT: Change the metrics or the findings the user receives
- MUST: Be optional. Every number and every finding in a report is
  produced deterministically before the agent is ever called.

The orchestrator bounds every call with a timeout and treats any failure
as "no advice".
"""

import json
from typing import Awaitable, Callable, Optional

import google.generativeai as genai

from finmind.config import GeminiSettings, get_settings
from finmind.models.insights import MetricsSnapshot, RuleFinding


# (metrics, findings, lang) -> advice text or None
AdviceGenerator = Callable[[MetricsSnapshot, list[RuleFinding], str], Awaitable[Optional[str]]]


SYSTEM_INSTRUCTION = (
    "You are a personal finance advisor. Tone: calm, candid, and practical. "
    "Use plain language with no hype or emojis."
)

ADVICE_INSTRUCTION = (
    "In 4-6 sentences, follow this structure: "
    "1) Diagnosis: start with a direct assessment of current status (e.g., Health Score, Burn Rate). "
    "2) Risks: highlight the single biggest risk immediately. "
    "3) Action & Method: provide 1-2 next steps, explicitly naming a financial strategy or method "
    "to use (e.g., Debt Avalanche, 50/30/20 rule, DCA). "
    "4) Sparse Data: if data is insufficient, suggest tracking specific missing categories. "
    "Keep it concise but strategic."
)

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "it": "Italian",
}


class AdviceGeneratorError(Exception):
    """The model could not produce advice."""
    pass


def build_advice_prompt(
    metrics: MetricsSnapshot,
    findings: list[RuleFinding],
    lang: str = "en",
) -> str:
    """
    Build the user prompt: the computed snapshot and findings as JSON plus
    the writing instruction.
    """
    language = LANGUAGE_NAMES.get(lang.lower(), "English")
    payload = {
        "metrics": metrics.model_dump(mode="json", by_alias=True),
        "rules": [f.model_dump(mode="json") for f in findings],
        "instruction": f"{ADVICE_INSTRUCTION} Respond in {language} only.",
        "language": lang,
    }
    return json.dumps(payload, ensure_ascii=False)


class AdvisorAgent:
    """
    Gemini-backed advice generator.

    RESPONSIBILITIES:
    - Narrate computed metrics and findings
    - Suggest one or two concrete next steps

    BOUNDARIES:
    - NEVER receives raw records
    - NEVER persists anything
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def generate_advice(
        self,
        metrics: MetricsSnapshot,
        findings: list[RuleFinding],
        lang: str = "en",
    ) -> Optional[str]:
        """
        Generate advice for one report.

        Returns:
            The advice text, or None when the model returned nothing usable

        Raises:
            AdviceGeneratorError: If the model call fails
        """
        prompt = build_advice_prompt(metrics, findings, lang)
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text
        except Exception as e:
            raise AdviceGeneratorError(f"Advice generation failed: {e}") from e

        text = (text or "").strip()
        return text or None
