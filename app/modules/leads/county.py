"""
County Import: tax-delinquent properties from public records, saved as leads
with source=county. These leads carry tax data but no AI analysis.
"""

import logging

from app.models.lead import Lead
from app.modules.store.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

# Sample extract of the Cecil County, MD tax-delinquency list.
COUNTY_RECORDS = [
    {
        "property_details": "419 S Main St, Elkton, MD",
        "latitude": 39.6083,
        "longitude": -75.8364,
        "tax_amount": 7500,
        "property_type": "Residential",
    },
    {
        "property_details": "Vacant lot near Big Elk Creek, Elkton, MD",
        "latitude": 39.6150,
        "longitude": -75.8200,
        "tax_amount": 2500,
        "property_type": "Vacant Land",
    },
]


async def import_county_leads(gateway: PersistenceGateway, records: list[dict] | None = None) -> list[str]:
    ids = []
    for record in records if records is not None else COUNTY_RECORDS:
        ids.append(await gateway.create_lead(Lead(source="county", **record)))
    logger.info("Imported %d county properties for user %s", len(ids), gateway.user_id)
    return ids
