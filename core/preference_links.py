"""
PreferenceLinkRegistry — shareable links to a snapshot of a user's top artists.

Links live for the lifetime of the process.  The only mutation after
creation is appending to ``accepted_by``, which happens under the link's
lock together with the "already accepted?" check.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Sequence

from core.comparison import DEFAULT_PREVIEW_LENGTH, compare
from core.store import InMemoryStore, KeyValueStore
from utils.errors import LinkNotFound
from utils.schemas import (
    Acceptance,
    AcceptResult,
    CreatedLink,
    Entity,
    Identity,
    LinkSummary,
    OwnedLink,
    PreferenceLink,
    UserRef,
)
from utils.validators import validate_link_id, validate_preference_set

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTITIES = 50


class PreferenceLinkRegistry:
    def __init__(
        self,
        store: Optional[KeyValueStore[PreferenceLink]] = None,
        *,
        max_entities: int = DEFAULT_MAX_ENTITIES,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        self._store: KeyValueStore[PreferenceLink] = store or InMemoryStore()
        self.max_entities = max_entities
        self.preview_length = preview_length

    async def _get(self, link_id: str) -> PreferenceLink:
        link = await self._store.get(validate_link_id(link_id))
        if link is None:
            raise LinkNotFound("Preference link not found")
        return link

    async def create_link(
        self,
        identity: Identity,
        preference_set: Sequence[Entity],
        base_url: str,
    ) -> CreatedLink:
        """Snapshot *preference_set* under a new link id."""
        snapshot = validate_preference_set(preference_set, self.max_entities)
        link = PreferenceLink(
            link_id=str(uuid.uuid4()),
            owner=identity.model_copy(deep=True),
            top_artists=[e.model_copy(deep=True) for e in snapshot],
        )
        await self._store.set(link.link_id, link)
        logger.info(
            "Created preference link %s for %s (%d entities)",
            link.link_id,
            identity.id,
            len(snapshot),
        )
        return CreatedLink(
            link_id=link.link_id,
            share_url=f"{base_url.rstrip('/')}/api/preference/accept/{link.link_id}",
        )

    async def read_link(self, link_id: str) -> LinkSummary:
        """Public summary; the snapshot itself is never exposed here."""
        link = await self._get(link_id)
        return LinkSummary(
            link_id=link.link_id,
            user_name=link.owner.display_name,
            user_image=link.owner.image_url,
            created_at=link.created_at,
            top_artists_count=len(link.top_artists),
        )

    async def accept_link(
        self,
        link_id: str,
        identity: Identity,
        preference_set: Sequence[Entity],
    ) -> AcceptResult:
        """
        Record *identity* as having accepted the link (once) and compare
        the owner's snapshot with *preference_set*.

        The comparison is recomputed on every call since the accepting
        side's preferences may have changed since a previous accept.
        """
        accepting_set = validate_preference_set(preference_set, self.max_entities)
        link = await self._get(link_id)
        async with self._store.lock(link.link_id):
            link = await self._get(link.link_id)
            if not any(a.user_id == identity.id for a in link.accepted_by):
                link.accepted_by.append(
                    Acceptance(user_id=identity.id, user_name=identity.display_name)
                )
                await self._store.set(link.link_id, link)
                logger.info("Link %s accepted by %s", link.link_id, identity.id)

        comparison = compare(link.top_artists, accepting_set, self.preview_length)
        return AcceptResult(
            comparison=comparison,
            original_user=UserRef(id=link.owner.id, name=link.owner.display_name),
            accepting_user=UserRef(id=identity.id, name=identity.display_name),
        )

    async def list_links(self, owner_id: str) -> List[OwnedLink]:
        links = [link for link in await self._store.values() if link.owner.id == owner_id]
        links.sort(key=lambda link: link.created_at)
        return [
            OwnedLink(
                link_id=link.link_id,
                created_at=link.created_at,
                accepted_by_count=len(link.accepted_by),
                accepted_by=list(link.accepted_by),
            )
            for link in links
        ]
