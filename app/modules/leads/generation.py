"""
Lead Generation: the AI use cases wired end to end.
Analysis, offer letters, automated lead search and market trend commentary.
"""

import logging
from typing import Iterable

from app.errors import DealflowError
from app.models.comps import CompSale
from app.models.lead import Lead, LeadAnalysis
from app.modules.ai.client import GenerativeClient
from app.modules.ai.parsers import parse_free_text, parse_generated_leads, parse_lead_analysis
from app.modules.ai.prompts import (
    PropertyImage,
    build_batch_leads_payload,
    build_lead_analysis_payload,
    build_market_trend_payload,
    build_offer_letter_payload,
)
from app.modules.store.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class LeadNotAnalyzed(DealflowError):
    """The lead has no AI analysis to draw on (e.g. a county import)."""


async def analyze_property(
    client: GenerativeClient,
    details: str,
    latitude: float | None = None,
    longitude: float | None = None,
    image: PropertyImage | None = None,
) -> LeadAnalysis:
    """Ask the model for a structured investment analysis of one property."""
    payload = build_lead_analysis_payload(details, latitude, longitude, image)
    text = await client.call(payload)
    analysis = parse_lead_analysis(text)
    logger.info("Analysis ready for %r: offer range %s", details[:60], analysis.suggested_offer_range)
    return analysis


async def save_analyzed_lead(
    gateway: PersistenceGateway,
    details: str,
    analysis: LeadAnalysis,
    latitude: float | None = None,
    longitude: float | None = None,
) -> str:
    lead = Lead(
        property_details=details,
        latitude=latitude,
        longitude=longitude,
        generated_results=analysis.model_dump_json(by_alias=True),
    )
    return await gateway.create_lead(lead)


async def draft_offer_letter(client: GenerativeClient, lead: Lead) -> str:
    analysis = lead.analysis()
    if analysis is None:
        raise LeadNotAnalyzed(f"Lead {lead.id} has no analysis; run an analysis before drafting an offer")
    payload = build_offer_letter_payload(lead.property_details, analysis.suggested_offer_range)
    return parse_free_text(await client.call(payload))


async def run_automated_lead_search(
    client: GenerativeClient,
    gateway: PersistenceGateway,
    count: int = 5,
) -> list[str]:
    """Generate `count` synthetic leads and save every one of them. Returns the new ids."""
    user_id = gateway.user_id  # fail before spending an AI call when nobody is signed in
    text = await client.call(build_batch_leads_payload(count))
    generated = parse_generated_leads(text)

    ids = []
    for item in generated:
        lead = Lead(
            property_details=item.property_details,
            latitude=item.latitude,
            longitude=item.longitude,
            generated_results=item.generated_results.model_dump_json(by_alias=True),
            source="ai",
        )
        ids.append(await gateway.create_lead(lead))

    logger.info("Automated lead search saved %d leads for user %s", len(ids), user_id)
    return ids


async def analyze_market(client: GenerativeClient, comps: Iterable[CompSale]) -> str:
    comps = list(comps)
    if not comps:
        raise ValueError("Add at least one comparable sale before running a market analysis")
    return parse_free_text(await client.call(build_market_trend_payload(comps)))
