from fastapi import APIRouter, Depends

from app.api.deps import build_gateway, get_current_user, get_store
from app.modules.finance.calculators import dashboard_summary
from app.modules.store.base import DocumentStore

router = APIRouter()


@router.get("")
async def dashboard(
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    """Totals, status distribution for the pie chart, and map points."""
    gateway = build_gateway(store, user_id)
    leads = await gateway.list_leads()
    contacts = await gateway.list_contacts()
    return dashboard_summary(leads, contacts)
