"""
Derived-state calculators for the financial analysis view and the dashboard.
Pure functions over plain numbers and lead lists.
"""

from collections import Counter
from datetime import date
from typing import Iterable

from app.models.comps import CompSale
from app.models.contact import Contact
from app.models.lead import DEFAULT_STATUS, Lead


def compute_profit_and_roi(
    purchase: float,
    sale: float,
    closing: float,
    rehab: float,
    holding: float,
) -> tuple[float, float]:
    """Return (profit, roi_percent). ROI is 0 when there are no costs."""
    total_costs = purchase + closing + rehab + holding
    profit = sale - total_costs
    roi = profit / total_costs * 100 if total_costs > 0 else 0
    return profit, roi


def aggregate_status_counts(leads: Iterable[Lead | dict]) -> dict[str, int]:
    """Count leads per status; leads without a status count as New."""
    counts: Counter[str] = Counter()
    for lead in leads:
        status = lead.get("status") if isinstance(lead, dict) else lead.status
        counts[status or DEFAULT_STATUS] += 1
    return dict(counts)


def cost_breakdown(purchase: float, closing: float, rehab: float, holding: float) -> list[dict]:
    """Pie-chart slices; zero-value costs are left out."""
    slices = [
        {"name": "Purchase Price", "value": purchase},
        {"name": "Closing Costs", "value": closing},
        {"name": "Rehab Costs", "value": rehab},
        {"name": "Holding Costs", "value": holding},
    ]
    return [s for s in slices if s["value"] > 0]


def add_comp(comps: list[CompSale], price: float, today: date | None = None) -> list[CompSale]:
    """Append a comp named "Comp N" dated today."""
    comp = CompSale(name=f"Comp {len(comps) + 1}", price=price, date=today or date.today())
    return [*comps, comp]


def comps_trend(comps: Iterable[CompSale]) -> list[dict]:
    """Line-chart points, oldest first."""
    return [
        {"name": c.date.isoformat(), "price": c.price}
        for c in sorted(comps, key=lambda c: c.date)
    ]


def dashboard_summary(leads: list[Lead], contacts: list[Contact]) -> dict:
    status_counts = aggregate_status_counts(leads)
    return {
        "total_leads": len(leads),
        "total_contacts": len(contacts),
        "county_leads": sum(1 for lead in leads if lead.source == "county"),
        "under_contract": status_counts.get("Under Contract", 0),
        "status_counts": status_counts,
        "status_chart": [{"name": status, "value": count} for status, count in status_counts.items()],
        "map_points": [
            {"id": lead.id, "name": lead.property_details, "latitude": lead.latitude, "longitude": lead.longitude}
            for lead in leads
            if lead.latitude is not None and lead.longitude is not None
        ],
    }
