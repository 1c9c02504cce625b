"""Generate a clinical summary report from an assembled patient context."""

import json
import logging

from healthtrack.context.assembler import AssembledContext
from healthtrack.models import ClinicalReport
from healthtrack.reporting.client import chat_completion
from healthtrack.reporting.prompts import REPORT_SYSTEM, REPORT_USER

logger = logging.getLogger(__name__)


def clean_json_response(text: str) -> str:
    """Strip markdown code fences and surrounding whitespace from JSON-like text."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline != -1:
            cleaned = cleaned[first_newline + 1 :]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _parse_report(raw: str) -> ClinicalReport:
    data = json.loads(clean_json_response(raw))
    if not isinstance(data, dict):
        raise ValueError("Report response must be a JSON object.")
    return ClinicalReport(**data)


async def generate_clinical_report(assembled: AssembledContext) -> ClinicalReport:
    """Summarize the context payload; falls back to a placeholder after one retry."""
    prompt = REPORT_USER.format(context_payload=assembled.payload)

    raw = await chat_completion(
        system_prompt=REPORT_SYSTEM,
        user_prompt=prompt,
        call_type="clinical_report",
    )

    try:
        return _parse_report(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Failed to parse clinical report, retrying: %s", e)
        raw = await chat_completion(
            system_prompt=REPORT_SYSTEM,
            user_prompt=prompt + "\n\nIMPORTANT: Output ONLY valid JSON, no other text.",
            call_type="clinical_report",
        )
        try:
            return _parse_report(raw)
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.error("Clinical report generation failed after retry.")
            return ClinicalReport(
                overview="Unable to generate report: parsing failed.",
                symptom_trends="N/A",
                conversation_highlights="N/A",
                follow_up_topics=[],
            )
