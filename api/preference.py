"""
Preference link routes — create, read (public), accept, list own links.

Route prefix: /api/preference
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_link_registry, provider_client
from connectors.client import ProviderClient
from core.preference_links import PreferenceLinkRegistry
from utils.schemas import AcceptResult, CreatedLink, Identity, LinkSummary, OwnedLink

logger = logging.getLogger(__name__)

router = APIRouter(tags=["preference"])


async def _identity_and_artists(client: ProviderClient, limit: int):
    profile, artists = await asyncio.gather(
        client.get_profile(),
        client.get_top_artists(limit=limit, time_range="medium_term"),
    )
    return Identity.from_profile(profile), artists


@router.post("/create-link", response_model=CreatedLink)
async def create_link(
    request: Request,
    client: ProviderClient = Depends(provider_client),
    links: PreferenceLinkRegistry = Depends(get_link_registry),
) -> CreatedLink:
    """Snapshot the caller's top artists behind a shareable link."""
    identity, artists = await _identity_and_artists(client, links.max_entities)
    return await links.create_link(identity, artists, str(request.base_url))


@router.get("/link/{link_id}", response_model=LinkSummary)
async def read_link(
    link_id: str,
    links: PreferenceLinkRegistry = Depends(get_link_registry),
) -> LinkSummary:
    """Public — owner name and artist count only."""
    return await links.read_link(link_id)


@router.post("/accept/{link_id}", response_model=AcceptResult)
async def accept_link(
    link_id: str,
    client: ProviderClient = Depends(provider_client),
    links: PreferenceLinkRegistry = Depends(get_link_registry),
) -> AcceptResult:
    """Accept a link and compare the caller's top artists with the owner's."""
    await links.read_link(link_id)  # 404 before spending provider calls
    identity, artists = await _identity_and_artists(client, links.max_entities)
    return await links.accept_link(link_id, identity, artists)


@router.get("/my-links", response_model=List[OwnedLink])
async def my_links(
    client: ProviderClient = Depends(provider_client),
    links: PreferenceLinkRegistry = Depends(get_link_registry),
) -> List[OwnedLink]:
    profile = await client.get_profile()
    return await links.list_links(str(profile["id"]))
