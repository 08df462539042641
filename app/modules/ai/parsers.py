"""
Response parsers: turn the model's text into typed results.
Any decode or shape failure raises MalformedResponse so callers can tell it
apart from rate limits and network failures.
"""

import json
import logging
import re

from pydantic import TypeAdapter, ValidationError

from app.errors import MalformedResponse
from app.models.lead import GeneratedLead, LeadAnalysis

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json)?")

_generated_leads = TypeAdapter(list[GeneratedLead])


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text).strip()


def load_json(text: str):
    raw = strip_code_fences(text)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse model response as JSON: %s (raw=%r)", e, raw[:200])
        raise MalformedResponse(f"Model response is not valid JSON: {e}") from e


def parse_lead_analysis(text: str) -> LeadAnalysis:
    data = load_json(text)
    try:
        return LeadAnalysis.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"Analysis is missing required fields: {_describe(e)}") from e


def parse_generated_leads(text: str) -> list[GeneratedLead]:
    data = load_json(text)
    if isinstance(data, dict) and isinstance(data.get("leads"), list):
        data = data["leads"]
    if not isinstance(data, list):
        raise MalformedResponse("Expected a JSON array of leads")
    try:
        return _generated_leads.validate_python(data)
    except ValidationError as e:
        raise MalformedResponse(f"Generated leads are malformed: {_describe(e)}") from e


def parse_free_text(text: str) -> str:
    return text.strip()


def _describe(error: ValidationError) -> str:
    return ", ".join(".".join(str(p) for p in err["loc"]) or "root" for err in error.errors()[:5])
