"""
ToS Analyzer
Sends a legal document to the chat model and returns its raw JSON risk assessment.
"""

import json
import logging
from typing import Any, Dict, Iterable, Optional, Union

from app.core.config import settings
from app.schemas.analysis import (
    AnalyzerOutput,
    CATEGORY_DESCRIPTIONS,
    ContentType,
    RiskCategory,
)
from app.schemas.errors import ProviderError
from app.schemas.openai import OpenAIError
from app.services.openai_service import OpenAIService

logger = logging.getLogger(__name__)


SYSTEM_MESSAGE = (
    "You are a privacy expert reviewing Terms of Service and Privacy Policies on behalf of users. "
    "You quote risky clauses exactly as written and you always answer with a single JSON object."
)

RESPONSE_FORMAT_HINT = """{
  "overall_risk_score": 0-100,
  "confidence_score": 0.0-1.0,
  "detected_clauses": [
    {
      "clause_text": "exact quote",
      "section": "section name",
      "position": line_number,
      "risk_level": "low | medium | high | critical",
      "risk_category": "one of the category keys",
      "explanation": "why risky",
      "user_impact": "how it affects users",
      "mitigation_advice": "what users can do"
    }
  ],
  "risk_breakdown": {<every category key>: 0-100},
  "recommendation_summary": "Overall recommendation and key points to consider"
}"""


def build_analysis_prompt(
    content: str,
    content_type: Union[ContentType, str],
    categories: Iterable[RiskCategory] = tuple(RiskCategory)
) -> str:
    """User prompt for one document"""
    document_kind = ContentType(content_type).value.replace("_", " ")
    focus_areas = "\n".join(
        f"{i}. {CATEGORY_DESCRIPTIONS[category]} (key: {category.value})"
        for i, category in enumerate(categories, 1)
    )
    return f"""Analyze the following {document_kind} and provide a detailed risk assessment.

Focus on these key areas:
{focus_areas}

For each risky clause found, provide:
- Exact quote from the document
- Risk level (low/medium/high/critical)
- Explanation of why it's risky
- User impact description
- Mitigation advice

Document to analyze:
{content}

Respond in JSON format with this structure:
{RESPONSE_FORMAT_HINT}"""


def parse_json_response(response_text: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model reply into a dict.

    Replies may still be wrapped in markdown code fences.

    Raises:
        ValueError: If the reply is empty or not a JSON object
    """
    if not response_text:
        raise ValueError("Empty response from OpenAI")

    response_text = response_text.strip()
    if response_text.startswith("```json"):
        response_text = response_text[7:]
    if response_text.startswith("```"):
        response_text = response_text[3:]
    if response_text.endswith("```"):
        response_text = response_text[:-3]
    response_text = response_text.strip()

    parsed = json.loads(response_text)
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class TosAnalyzer:
    """
    AI analyzer for Terms of Service and Privacy Policy documents.

    Returns the model's JSON unvalidated; shape validation belongs to the caller.
    """

    def __init__(
        self,
        openai_service: Optional[OpenAIService] = None,
        model: Optional[str] = None
    ):
        self.openai_service = openai_service or OpenAIService()
        self.model = model or settings.OPENAI_MODEL

    async def analyze(
        self,
        content: str,
        content_type: Union[ContentType, str],
        categories: Iterable[RiskCategory] = tuple(RiskCategory)
    ) -> AnalyzerOutput:
        """
        Run the AI analysis of one document.

        Raises:
            ProviderError: If the API call fails or the reply is not JSON
        """
        prompt = build_analysis_prompt(content, content_type, categories)

        try:
            completion = await self.openai_service.create_chat_completion(
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": prompt}
                ],
                model=self.model,
                temperature=settings.OPENAI_TEMPERATURE,
                max_tokens=settings.OPENAI_MAX_TOKENS,
                response_format={"type": "json_object"}
            )
        except OpenAIError as e:
            raise ProviderError(f"AI analysis request failed: {e.message}", cause=e) from e

        try:
            payload = parse_json_response(completion.choices[0].message.content)
        except (json.JSONDecodeError, ValueError) as e:
            raise ProviderError(f"AI analysis returned malformed JSON: {e}", cause=e) from e

        usage = getattr(completion, "usage", None)
        tokens_used = usage.total_tokens if usage else 0
        model = getattr(completion, "model", None) or self.model

        logger.info(
            f"AI analysis completed: {len(payload.get('detected_clauses') or [])} clauses, "
            f"{tokens_used} tokens"
        )
        return AnalyzerOutput(payload=payload, model=model, tokens_used=tokens_used)
