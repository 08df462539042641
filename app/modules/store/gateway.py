"""
Persistence Gateway: per-user access to the "ideas" (leads) and "contacts" collections.
Every operation is scoped to artifacts/{app_id}/users/{user_id}/...; nothing here
can read or write another user's documents.
"""

import inspect
import logging
from typing import Awaitable, Callable

from pydantic import ValidationError

from app.errors import NotAuthenticated, NotFound
from app.models.contact import Contact
from app.models.lead import DEFAULT_STATUS, LEAD_STATUSES, Lead, LeadStatus
from app.modules.store.base import DocumentStore, collection_path
from app.modules.store.subscription import Subscription

logger = logging.getLogger(__name__)

LEADS = "ideas"
CONTACTS = "contacts"


class PersistenceGateway:
    def __init__(self, store: DocumentStore, app_id: str, user_id: str | None):
        self._store = store
        self._app_id = app_id
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        if not self._user_id:
            raise NotAuthenticated("No signed-in user; sign in before reading or writing data")
        return self._user_id

    def _path(self, collection: str) -> str:
        return collection_path(self._app_id, self.user_id, collection)

    # --- Leads ---

    async def create_lead(self, lead: Lead) -> str:
        """Persist a lead for the current user. Status defaults to New."""
        data = lead.to_document()
        data["userId"] = self.user_id
        data.setdefault("status", DEFAULT_STATUS)
        lead_id = await self._store.add(self._path(LEADS), data)
        logger.info("Lead %s created for user %s (source=%s)", lead_id, self.user_id, lead.source or "manual")
        return lead_id

    async def get_lead(self, lead_id: str) -> Lead:
        doc = await self._store.get(self._path(LEADS), lead_id)
        if doc is None:
            raise NotFound(LEADS, lead_id)
        return Lead.model_validate(doc)

    async def list_leads(self) -> list[Lead]:
        return _to_leads(await self._store.list(self._path(LEADS)))

    async def subscribe_leads(
        self, callback: Callable[[list[Lead]], Awaitable[None] | None] | None = None,
    ) -> Subscription[list[Lead]]:
        return await self._subscribe(LEADS, _to_leads, callback)

    async def update_lead_status(self, lead_id: str, status: LeadStatus) -> None:
        if status not in LEAD_STATUSES:
            raise ValueError(f"Invalid status '{status}'. Must be one of: {', '.join(LEAD_STATUSES)}")
        try:
            await self._store.update(self._path(LEADS), lead_id, {"status": status})
        except NotFound:
            raise NotFound(LEADS, lead_id) from None
        logger.info("Lead %s status changed to %s", lead_id, status)

    async def delete_lead(self, lead_id: str) -> None:
        if not await self._store.delete(self._path(LEADS), lead_id):
            logger.info("Lead %s already deleted", lead_id)

    # --- Contacts ---

    async def create_contact(self, contact: Contact) -> str:
        data = contact.to_document()
        data["userId"] = self.user_id
        contact_id = await self._store.add(self._path(CONTACTS), data)
        logger.info("Contact %s created for user %s", contact_id, self.user_id)
        return contact_id

    async def list_contacts(self) -> list[Contact]:
        return _to_contacts(await self._store.list(self._path(CONTACTS)))

    async def subscribe_contacts(
        self, callback: Callable[[list[Contact]], Awaitable[None] | None] | None = None,
    ) -> Subscription[list[Contact]]:
        return await self._subscribe(CONTACTS, _to_contacts, callback)

    async def delete_contact(self, contact_id: str) -> None:
        if not await self._store.delete(self._path(CONTACTS), contact_id):
            logger.info("Contact %s already deleted", contact_id)

    async def _subscribe(self, collection: str, transform, callback) -> Subscription:
        subscription = await self._store.listen(self._path(collection), transform=transform)
        if callback is None:
            return subscription

        # First snapshot goes out before returning; the rest flow through a task.
        result = callback(await subscription.next())
        if inspect.isawaitable(result):
            await result
        subscription.drive(callback)
        return subscription


def _to_leads(docs: list[dict]) -> list[Lead]:
    return _validate_each(Lead, docs)


def _to_contacts(docs: list[dict]) -> list[Contact]:
    return _validate_each(Contact, docs)


def _validate_each(model, docs: list[dict]) -> list:
    """Validate documents one by one; any that do not fit the model are logged and skipped."""
    items = []
    for doc in docs:
        try:
            items.append(model.model_validate(doc))
        except ValidationError as e:
            logger.warning("Skipping invalid %s document %s: %s", model.__name__, doc.get("id"), e.errors()[:3])
    return items
