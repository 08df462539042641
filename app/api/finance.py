"""Financial analysis: ROI calculator, comps trend and AI market commentary."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_ai_client, get_current_user, get_registry
from app.models.comps import CompSale
from app.modules.ai.client import GenerativeClient
from app.modules.ai.requests import RequestRegistry
from app.modules.finance.calculators import add_comp, comps_trend, compute_profit_and_roi, cost_breakdown
from app.modules.leads.generation import analyze_market

router = APIRouter()


class DealCosts(BaseModel):
    purchase_price: float = 0
    sales_price: float = 0
    closing_costs: float = 0
    rehab_costs: float = 0
    holding_costs: float = 0


class CompsRequest(BaseModel):
    comps: list[CompSale] = Field(min_length=1)


@router.post("/roi")
async def roi(costs: DealCosts):
    profit, roi_percent = compute_profit_and_roi(
        costs.purchase_price, costs.sales_price, costs.closing_costs, costs.rehab_costs, costs.holding_costs,
    )
    return {
        "profit": profit,
        "roi_percent": roi_percent,
        "cost_breakdown": cost_breakdown(
            costs.purchase_price, costs.closing_costs, costs.rehab_costs, costs.holding_costs,
        ),
    }


class NewComp(BaseModel):
    comps: list[CompSale] = []
    price: float = Field(ge=0)


@router.post("/comps")
async def append_comp(body: NewComp):
    """Append a sale named "Comp N" dated today and return the whole list."""
    return {"comps": [c.model_dump(mode="json") for c in add_comp(body.comps, body.price)]}


@router.post("/comps-trend")
async def trend(body: CompsRequest):
    return {"points": comps_trend(body.comps)}


@router.post("/market-analysis")
async def market_analysis(
    body: CompsRequest,
    user_id: str = Depends(get_current_user),
    client: GenerativeClient = Depends(get_ai_client),
    registry: RequestRegistry = Depends(get_registry),
):
    analysis = await registry.run(user_id, "market_analysis", analyze_market(client, body.comps))
    return {"analysis": analysis}
