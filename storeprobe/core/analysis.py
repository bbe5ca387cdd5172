"""
Narrative analysis of a finished execution.

Summarizes the structured result into a short summary, up to three
recommendations, a risk level and a 0-100 score. Uses an OpenAI chat model
when a client is configured and falls back to a deterministic scoring
otherwise, or whenever the model call or its reply is unusable.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from storeprobe.core.config import ProbeSettings
from storeprobe.core.models import NarrativeAnalysis, PageResult, RiskLevel, TestExecutionResult

logger = logging.getLogger("storeprobe.analysis")

MAX_RECOMMENDATIONS = 3

SYSTEM_PROMPT = (
    "You are an expert QA engineer analyzing ecommerce website test results. "
    "Provide actionable insights and recommendations."
)


def risk_for_score(score: int) -> RiskLevel:
    if score > 80:
        return RiskLevel.LOW
    if score > 60:
        return RiskLevel.MEDIUM
    if score > 40:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def critical_element_issues(pages: list[PageResult]) -> list[str]:
    issues: list[str] = []
    for page in pages:
        if not page.elements.title.present:
            issues.append("Missing product titles")
        if not page.elements.price.present:
            issues.append("Missing price display")
        if not page.elements.add_to_cart.present:
            issues.append("Missing add to cart buttons")
    return list(dict.fromkeys(issues))


def basic_analysis(result: TestExecutionResult) -> NarrativeAnalysis:
    pages = result.page_results
    images = result.image_records
    passed = sum(1 for page in pages if page.passed)
    loaded = sum(1 for image in images if image.loaded)

    pass_rate = (passed / len(pages)) * 100 if pages else 100.0
    image_rate = (loaded / len(images)) * 100 if images else 100.0
    score = round((pass_rate + image_rate) / 2)

    recommendations: list[str] = []
    if passed < len(pages):
        recommendations.append("Fix missing critical elements on product pages")
    if loaded < len(images):
        recommendations.append("Resolve image loading issues")
    if result.errors.script_errors:
        recommendations.append("Address JavaScript errors")

    return NarrativeAnalysis(
        summary=(
            f"Test completed with {score}% overall score. "
            f"{passed}/{len(pages)} product pages passed validation."
        ),
        recommendations=tuple(recommendations[:MAX_RECOMMENDATIONS]),
        risk_level=risk_for_score(score),
        score=score,
    )


def build_prompt(result: TestExecutionResult) -> str:
    pages = result.page_results
    images = result.image_records
    errors = result.errors
    loaded = sum(1 for image in images if image.loaded)
    top_errors = "\n".join(f"- {error.message}" for error in errors.script_errors[:3]) or "- None"

    return f"""Analyze the following ecommerce website test results:

Product Page Tests:
- Total pages tested: {len(pages)}
- Pages passed: {sum(1 for page in pages if page.passed)}
- Critical elements missing: {', '.join(critical_element_issues(pages)) or 'None'}

Image Loading:
- Total images: {len(images)}
- Successfully loaded: {loaded}
- Failed to load: {len(images) - loaded}

Errors Detected:
- JavaScript errors: {len(errors.script_errors)}
- Network failures: {len(errors.network_errors)}
- Console warnings: {len(errors.console_warnings)}

Most critical JavaScript errors:
{top_errors}

Respond with JSON only:
{{
    "summary": "<brief summary of findings>",
    "recommendations": ["<up to 3 short recommendations>"],
    "risk_level": "low|medium|high|critical",
    "score": <integer 0-100>
}}"""


def parse_reply(payload: dict[str, Any]) -> NarrativeAnalysis:
    summary = str(payload.get("summary") or "").strip()
    if not summary:
        raise ValueError("analysis reply has no summary")
    risk_level = RiskLevel(str(payload.get("risk_level", "")).lower())
    score = max(0, min(100, int(payload.get("score"))))
    raw_recommendations = payload.get("recommendations") or []
    if not isinstance(raw_recommendations, list):
        raise ValueError("recommendations must be a list")
    recommendations = tuple(
        str(item).strip() for item in raw_recommendations if str(item).strip()
    )[:MAX_RECOMMENDATIONS]
    return NarrativeAnalysis(
        summary=summary,
        recommendations=recommendations,
        risk_level=risk_level,
        score=score,
    )


class NarrativeAnalyzer:
    def __init__(
        self,
        openai_client: Optional[AsyncOpenAI] = None,
        model: str = "gpt-4o-mini",
    ) -> None:
        self._openai = openai_client
        self._model = model

    @classmethod
    def from_settings(cls, settings: ProbeSettings) -> "NarrativeAnalyzer":
        if not settings.openai_api_key:
            logger.warning("[Analysis] No OpenAI API key found, falling back to basic analysis")
            return cls(None, model=settings.analysis_model)
        return cls(AsyncOpenAI(api_key=settings.openai_api_key), model=settings.analysis_model)

    async def analyze(self, result: TestExecutionResult) -> NarrativeAnalysis:
        """Never raises; any model failure degrades to the basic analysis."""
        if self._openai is None:
            return basic_analysis(result)

        try:
            response = await self._openai.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(result)},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=1000,
            )
            payload = json.loads(response.choices[0].message.content or "{}")
            analysis = parse_reply(payload)
            logger.info(f"[Analysis] Model analysis: score={analysis.score} risk={analysis.risk_level.value}")
            return analysis
        except Exception as e:
            logger.error(f"[Analysis] AI analysis failed, falling back to basic analysis: {e}")
            return basic_analysis(result)
