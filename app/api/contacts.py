from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket

from app.api.deps import build_gateway, get_current_user, get_store
from app.api.streams import accept_gateway, stream_snapshots
from app.models.contact import Contact
from app.modules.store.base import DocumentStore

router = APIRouter()


def dump_contact(contact: Contact) -> dict:
    return contact.model_dump(mode="json", by_alias=True)


@router.post("")
async def save_contact(
    contact: Contact,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    contact_id = await build_gateway(store, user_id).create_contact(contact)
    return {"id": contact_id}


@router.get("")
async def list_contacts(
    q: Optional[str] = Query(None, description="Case-insensitive search on seller name"),
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    contacts = await build_gateway(store, user_id).list_contacts()
    if q:
        contacts = [c for c in contacts if q.lower() in c.seller_name.lower()]
    return [dump_contact(c) for c in contacts]


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str,
    user_id: str = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    await build_gateway(store, user_id).delete_contact(contact_id)
    return {"deleted": contact_id}


@router.websocket("/stream")
async def stream_contacts(websocket: WebSocket, token: Optional[str] = Query(None)):
    gateway = await accept_gateway(websocket, token)
    if gateway is None:
        return
    await stream_snapshots(websocket, gateway.subscribe_contacts, lambda contacts: [dump_contact(c) for c in contacts])
