"""
Prompt templates and payload builders for the generative-AI endpoint.
Builders are pure: same inputs, same payload, no network.
"""

import base64
import json
from dataclasses import dataclass
from typing import Iterable

from app.models.comps import CompSale

JSON_RESPONSE_CONFIG = {"responseMimeType": "application/json"}

ANALYSIS_FIELDS = """"detailedPropertySummary": a comprehensive analysis of the property, its potential, and surrounding market.
"suggestedOfferRange": a calculated offer range based on the analysis (e.g., "$150,000 - $180,000").
"buyerProfiles": an array of ideal buyer profiles for this property.
"sellerOutreachAngles": an array of persuasive angles for contacting the seller.
"dueDiligenceChecklist": an array of critical items for due diligence."""

LEAD_ANALYSIS_PROMPT = """Analyze the following property for potential real estate flipping or development.
Property Details: "{details}".{location}

Generate a detailed response in JSON format with the following keys:
{fields}"""

LOCATION_LINE = "\nLocation Coordinates: Latitude {latitude}, Longitude {longitude}."

OFFER_LETTER_PROMPT = (
    'Write a professional and persuasive real estate offer letter for the property described as "{details}". '
    "The suggested offer range is {offer_range}. "
    "The letter should be addressed to the seller, be polite, and include a call to action to contact "
    "the buyer for further discussion. It should have placeholders for the seller's name, buyer's name, "
    "and contact information. Do not use an exact dollar amount, but reference a competitive offer."
)

BATCH_LEADS_PROMPT = (
    "Generate {count} detailed real estate investment leads, each with a property description, location, "
    "and potential value. For each lead, provide the data in a JSON object with the keys "
    '"propertyDetails", "latitude", "longitude", and "generatedResults". The "generatedResults" key should '
    'contain another JSON object with "detailedPropertySummary", "suggestedOfferRange", "buyerProfiles" (array), '
    '"sellerOutreachAngles" (array), and "dueDiligenceChecklist" (array). '
    "The full response should be a JSON array of these objects. Ensure all details are highly realistic and varied."
)

MARKET_TREND_PROMPT = (
    "Analyze the following real estate comps and provide a detailed market trend analysis. "
    "Comps data: {comps}. "
    "Conclude with a clear recommendation on whether the market is trending up, down, or stable."
)


@dataclass(frozen=True)
class PropertyImage:
    data: bytes
    mime_type: str


def _payload(text: str, image: PropertyImage | None = None, json_response: bool = False) -> dict:
    parts: list[dict] = [{"text": text}]
    if image is not None:
        parts.append({
            "inlineData": {
                "mimeType": image.mime_type,
                "data": base64.b64encode(image.data).decode("ascii"),
            }
        })
    payload: dict = {"contents": [{"parts": parts}]}
    if json_response:
        payload["generationConfig"] = dict(JSON_RESPONSE_CONFIG)
    return payload


def build_lead_analysis_payload(
    details: str,
    latitude: float | None = None,
    longitude: float | None = None,
    image: PropertyImage | None = None,
) -> dict:
    location = ""
    if latitude is not None and longitude is not None:
        location = LOCATION_LINE.format(latitude=latitude, longitude=longitude)
    text = LEAD_ANALYSIS_PROMPT.format(details=details, location=location, fields=ANALYSIS_FIELDS)
    return _payload(text, image=image, json_response=True)


def build_offer_letter_payload(details: str, offer_range: str) -> dict:
    return _payload(OFFER_LETTER_PROMPT.format(details=details, offer_range=offer_range))


def build_batch_leads_payload(count: int = 5) -> dict:
    return _payload(BATCH_LEADS_PROMPT.format(count=count), json_response=True)


def build_market_trend_payload(comps: Iterable[CompSale]) -> dict:
    comps_json = json.dumps([c.model_dump(mode="json") for c in comps])
    return _payload(MARKET_TREND_PROMPT.format(comps=comps_json))
