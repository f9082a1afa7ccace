"""
User API routes — profile and top items, proxied through ProviderClient.

Route prefix: /api/user
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import provider_client
from connectors.client import ProviderClient
from utils.validators import validate_limit, validate_time_range

router = APIRouter(tags=["user"])


@router.get("/profile")
async def profile(client: ProviderClient = Depends(provider_client)) -> Dict[str, Any]:
    return await client.get_profile()


@router.get("/top-artists")
async def top_artists(
    time_range: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.get_top_items(
        "artists", limit=validate_limit(limit), time_range=validate_time_range(time_range)
    )


@router.get("/top-tracks")
async def top_tracks(
    time_range: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.get_top_items(
        "tracks", limit=validate_limit(limit), time_range=validate_time_range(time_range)
    )


@router.get("/{user_id}/profile")
async def user_profile(
    user_id: str,
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.get_user_profile(user_id)
