"""
Seed script: fills a demo user's collections in the Postgres document store
(county leads, one analyzed lead, two contacts) and prints a custom sign-in token.
Run: python -m scripts.seed_demo [user_id]
"""

import asyncio
import os
import sys

from dotenv import load_dotenv

from app.models.contact import Contact
from app.models.lead import LeadAnalysis
from app.modules.auth.identity import issue_custom_token
from app.modules.leads.county import import_county_leads
from app.modules.leads.generation import save_analyzed_lead
from app.modules.store.gateway import PersistenceGateway
from app.modules.store.postgres import PostgresDocumentStore

load_dotenv()

DEMO_ANALYSIS = LeadAnalysis(
    detailed_property_summary=(
        "1950s brick ranch on a quarter-acre lot, dated kitchen and baths, solid roof. "
        "Street has seen three flips sell above $310k in the last year."
    ),
    suggested_offer_range="$185,000 - $205,000",
    buyer_profiles=["First-time buyers priced out of the county seat", "Small landlords seeking a long-term rental"],
    seller_outreach_angles=["Fast cash close with no repairs", "Flexible move-out date"],
    due_diligence_checklist=["Sewer scope", "Title search for liens", "Permit history for the 1990s addition"],
)

CONTACTS = [
    Contact(seller_name="Dana Whitfield", seller_phone="410-555-0142", seller_email="dana.w@example.com"),
    Contact(seller_name="Marcus Lee", seller_phone="410-555-0199"),
]


async def seed(user_id: str):
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set in .env")
        sys.exit(1)

    store = PostgresDocumentStore(database_url)
    await store.connect()
    try:
        gateway = PersistenceGateway(store, os.getenv("APP_ID", "default-app-id"), user_id)

        existing = await gateway.list_leads()
        if existing:
            print(f"User {user_id} already has {len(existing)} leads. Skipping seed.")
            return

        county_ids = await import_county_leads(gateway)
        print(f"Imported {len(county_ids)} county leads")

        lead_id = await save_analyzed_lead(gateway, "1234 Oak Ridge Dr, North East, MD", DEMO_ANALYSIS, 39.6001, -75.9413)
        print(f"Created analyzed lead {lead_id}")

        for contact in CONTACTS:
            await gateway.create_contact(contact)
        print(f"Created {len(CONTACTS)} contacts")
    finally:
        await store.close()

    secret = os.getenv("SECRET_KEY", "dev-secret-change-me")
    print(f"\nSign in with: POST /auth/token {{\"token\": \"{issue_custom_token(user_id, secret)}\"}}")


if __name__ == "__main__":
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else "demo-investor"))
