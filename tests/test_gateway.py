import asyncio

import pytest

from app.errors import NotAuthenticated, NotFound
from app.models.contact import Contact
from app.models.lead import Lead, LeadAnalysis
from app.modules.store.gateway import PersistenceGateway
from helpers import ANALYSIS


async def test_create_lead_stamps_owner_status_and_timestamp(gateway, store):
    lead_id = await gateway.create_lead(Lead(property_details="419 S Main St"))

    doc = await store.get("artifacts/test-app/users/user-1/ideas", lead_id)
    assert doc["status"] == "New"
    assert doc["userId"] == "user-1"
    assert doc["timestamp"]

    lead = await gateway.get_lead(lead_id)
    assert lead.id == lead_id
    assert lead.timestamp is not None


async def test_writes_require_a_user(store):
    anonymous = PersistenceGateway(store, "test-app", None)

    with pytest.raises(NotAuthenticated):
        await anonymous.create_lead(Lead(property_details="x"))
    with pytest.raises(NotAuthenticated):
        await anonymous.create_contact(Contact(seller_name="Dana"))
    with pytest.raises(NotAuthenticated):
        await anonymous.subscribe_leads()


async def test_subscription_delivers_current_collection_first(gateway):
    await gateway.create_lead(Lead(property_details="existing"))

    async with await gateway.subscribe_leads() as subscription:
        first = await subscription.next()
        assert [lead.property_details for lead in first] == ["existing"]

        await gateway.create_lead(Lead(property_details="second"))
        second = await subscription.next()
        assert [lead.property_details for lead in second] == ["existing", "second"]


async def test_analysis_round_trips_through_subscription(gateway):
    analysis = LeadAnalysis.model_validate(ANALYSIS)
    await gateway.create_lead(Lead(
        property_details="Colonial",
        generated_results=analysis.model_dump_json(by_alias=True),
    ))

    async with await gateway.subscribe_leads() as subscription:
        (lead,) = await subscription.next()

    assert lead.analysis() == analysis
    assert lead.analysis().model_dump(by_alias=True) == ANALYSIS


async def test_status_update_is_pushed_to_subscribers(gateway):
    lead_id = await gateway.create_lead(Lead(property_details="Duplex"))
    subscription = await gateway.subscribe_leads()
    await subscription.next()

    await gateway.update_lead_status(lead_id, "Offer Made")

    (lead,) = await subscription.next()
    assert lead.status == "Offer Made"
    subscription.unsubscribe()


async def test_update_missing_lead_raises_not_found(gateway):
    with pytest.raises(NotFound):
        await gateway.update_lead_status("missing", "Sold")


async def test_update_rejects_unknown_status(gateway):
    lead_id = await gateway.create_lead(Lead(property_details="Duplex"))
    with pytest.raises(ValueError):
        await gateway.update_lead_status(lead_id, "Closed")


async def test_delete_lead_twice_is_silent(gateway):
    keep = await gateway.create_lead(Lead(property_details="keep"))
    drop = await gateway.create_lead(Lead(property_details="drop"))
    subscription = await gateway.subscribe_leads()

    await gateway.delete_lead(drop)
    await gateway.delete_lead(drop)

    snapshot = await subscription.next()
    assert [lead.id for lead in snapshot] == [keep]
    subscription.unsubscribe()


async def test_contacts_crud(gateway):
    contact_id = await gateway.create_contact(Contact(seller_name="Dana", seller_email="dana@example.com"))

    (contact,) = await gateway.list_contacts()
    assert contact.id == contact_id
    assert contact.user_id == "user-1"

    await gateway.delete_contact(contact_id)
    await gateway.delete_contact(contact_id)
    assert await gateway.list_contacts() == []


async def test_users_cannot_see_each_other(store, gateway):
    other = PersistenceGateway(store, "test-app", "user-2")
    lead_id = await gateway.create_lead(Lead(property_details="mine"))

    assert await other.list_leads() == []
    with pytest.raises(NotFound):
        await other.get_lead(lead_id)
    with pytest.raises(NotFound):
        await other.update_lead_status(lead_id, "Sold")

    await other.delete_lead(lead_id)
    assert len(await gateway.list_leads()) == 1


async def test_slow_consumer_gets_latest_snapshot_only(gateway):
    subscription = await gateway.subscribe_leads()

    await gateway.create_lead(Lead(property_details="one"))
    await gateway.create_lead(Lead(property_details="two"))

    snapshot = await subscription.next()
    assert [lead.property_details for lead in snapshot] == ["one", "two"]
    assert subscription.dropped == 2
    subscription.unsubscribe()


async def test_unsubscribe_releases_listener(store, gateway):
    path = "artifacts/test-app/users/user-1/ideas"
    subscription = await gateway.subscribe_leads()
    assert store.listener_count(path) == 1

    subscription.unsubscribe()
    subscription.unsubscribe()

    assert store.listener_count(path) == 0
    assert not subscription.active
    with pytest.raises(StopAsyncIteration):
        await subscription.next()


async def test_callback_receives_initial_and_later_snapshots(gateway):
    seen: list[list[str]] = []
    changed = asyncio.Event()

    def on_snapshot(leads):
        seen.append([lead.property_details for lead in leads])
        changed.set()

    subscription = await gateway.subscribe_leads(on_snapshot)
    assert seen == [[]]

    changed.clear()
    await gateway.create_lead(Lead(property_details="new"))
    await asyncio.wait_for(changed.wait(), timeout=1)

    assert seen[-1] == ["new"]
    subscription.unsubscribe()


async def test_store_close_ends_subscriptions(store, gateway):
    subscription = await gateway.subscribe_contacts()
    await subscription.next()

    await store.close()

    assert [snapshot async for snapshot in subscription] == []


async def test_invalid_stored_document_is_skipped(store, gateway):
    path = "artifacts/test-app/users/user-1/ideas"
    subscription = await gateway.subscribe_leads()
    await subscription.next()

    await store.add(path, {"propertyDetails": "written elsewhere", "status": "Closed"})
    lead_id = await gateway.create_lead(Lead(property_details="valid"))

    snapshot = await subscription.next()
    assert [lead.id for lead in snapshot] == [lead_id]
    assert [lead.id for lead in await gateway.list_leads()] == [lead_id]
    assert len(await store.list(path)) == 2
    assert subscription.delivered == 2
    subscription.unsubscribe()


async def test_new_subscription_survives_invalid_document(store, gateway):
    await store.add("artifacts/test-app/users/user-1/contacts", {"sellerPhone": "555-0100"})
    await gateway.create_contact(Contact(seller_name="Dana"))

    async with await gateway.subscribe_contacts() as subscription:
        (contact,) = await subscription.next()

    assert contact.seller_name == "Dana"
