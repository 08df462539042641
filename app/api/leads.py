"""
Leads API: AI analysis, the deal-flow collection, automated lead search,
county import and offer letters.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, WebSocket
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import build_gateway, get_ai_client, get_current_user, get_registry, get_store
from app.api.streams import accept_gateway, stream_snapshots
from app.config import get_settings
from app.models.lead import Lead, LeadAnalysis, LeadStatus
from app.modules.ai.client import GenerativeClient
from app.modules.ai.prompts import PropertyImage
from app.modules.ai.requests import RequestRegistry
from app.modules.documents.offer_letter import render_offer_letter_pdf
from app.modules.leads.county import import_county_leads
from app.modules.leads.generation import (
    analyze_property,
    draft_offer_letter,
    run_automated_lead_search,
    save_analyzed_lead,
)
from app.modules.store.base import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()


class SaveLeadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_details: str = Field(alias="propertyDetails", min_length=1)
    latitude: float | None = None
    longitude: float | None = None
    generated_results: LeadAnalysis = Field(alias="generatedResults")


class StatusUpdate(BaseModel):
    status: LeadStatus


class OfferLetterPdfRequest(BaseModel):
    letter: str = Field(min_length=1)


def dump_lead(lead: Lead) -> dict:
    return lead.model_dump(mode="json", by_alias=True)


# --- AI analysis ---

@router.post("/analyze")
async def analyze(
    details: str = Form(..., min_length=1),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user),
    client: GenerativeClient = Depends(get_ai_client),
    registry: RequestRegistry = Depends(get_registry),
):
    """Analyze a property. The result is returned, not saved; POST /leads saves it."""
    property_image = None
    if image is not None and image.filename:
        property_image = PropertyImage(data=await image.read(), mime_type=image.content_type or "image/jpeg")

    analysis = await registry.run(
        user_id, "analyze", analyze_property(client, details, latitude, longitude, property_image),
    )
    return analysis.model_dump(by_alias=True)


@router.get("/requests")
async def active_requests(
    user_id: str = Depends(get_current_user),
    registry: RequestRegistry = Depends(get_registry),
):
    """AI actions currently running for this user (the UI disables their controls)."""
    return {"active": registry.active(user_id)}


@router.delete("/requests/{action}")
async def cancel_request(
    action: str,
    user_id: str = Depends(get_current_user),
    registry: RequestRegistry = Depends(get_registry),
):
    return {"action": action, "cancelled": registry.cancel(user_id, action)}


# --- Deal flow ---

@router.post("")
async def save_lead(
    body: SaveLeadRequest,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    gateway = build_gateway(store, user_id)
    lead_id = await save_analyzed_lead(
        gateway, body.property_details, body.generated_results, body.latitude, body.longitude,
    )
    return {"id": lead_id}


@router.get("")
async def list_leads(
    q: Optional[str] = Query(None, description="Case-insensitive search on property details"),
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    leads = await build_gateway(store, user_id).list_leads()
    if q:
        needle = q.lower()
        leads = [lead for lead in leads if needle in lead.property_details.lower()]
    return [dump_lead(lead) for lead in leads]


@router.post("/auto-generate")
async def auto_generate(
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    client: GenerativeClient = Depends(get_ai_client),
    registry: RequestRegistry = Depends(get_registry),
):
    gateway = build_gateway(store, user_id)
    count = get_settings().batch_lead_count
    ids = await registry.run(user_id, "auto_generate", run_automated_lead_search(client, gateway, count))
    return {"ids": ids, "count": len(ids)}


@router.post("/import-county")
async def import_county(
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    ids = await import_county_leads(build_gateway(store, user_id))
    return {"ids": ids, "count": len(ids)}


@router.get("/{lead_id}")
async def get_lead(
    lead_id: str,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    return dump_lead(await build_gateway(store, user_id).get_lead(lead_id))


@router.patch("/{lead_id}/status")
async def update_status(
    lead_id: str,
    body: StatusUpdate,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await build_gateway(store, user_id).update_lead_status(lead_id, body.status)
    return {"id": lead_id, "status": body.status}


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: str,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await build_gateway(store, user_id).delete_lead(lead_id)
    return {"deleted": lead_id}


# --- Offer letters ---

@router.post("/{lead_id}/offer-letter")
async def offer_letter(
    lead_id: str,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    client: GenerativeClient = Depends(get_ai_client),
    registry: RequestRegistry = Depends(get_registry),
):
    lead = await build_gateway(store, user_id).get_lead(lead_id)
    letter = await registry.run(user_id, "offer_letter", draft_offer_letter(client, lead))
    return {"id": lead_id, "letter": letter}


@router.post("/{lead_id}/offer-letter/pdf")
async def offer_letter_pdf(
    lead_id: str,
    body: OfferLetterPdfRequest,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    lead = await build_gateway(store, user_id).get_lead(lead_id)
    pdf = render_offer_letter_pdf(body.letter, lead.property_details)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="offer-letter-{lead_id}.pdf"'},
    )


# --- Live snapshots ---

@router.websocket("/stream")
async def stream_leads(websocket: WebSocket, token: Optional[str] = Query(None)):
    gateway = await accept_gateway(websocket, token)
    if gateway is None:
        return
    await stream_snapshots(websocket, gateway.subscribe_leads, lambda leads: [dump_lead(lead) for lead in leads])
