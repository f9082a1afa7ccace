"""
Playlist routes — blend playlist from common artists, recommendations,
own playlists, playlist detail.

Route prefix: /api/playlist
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import provider_client
from connectors.client import ProviderClient
from utils.errors import InvalidInput, ProviderRequestFailed, ProviderUnavailable
from utils.schemas import BlendPlaylistRequest
from utils.validators import sanitize_string, validate_limit, validate_seed_artists

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playlist"])

_BLEND_MAX_ARTISTS = 10
_BLEND_TRACKS_PER_ARTIST = 3
_DEFAULT_NAME = "VibeLink Blend Playlist"
_DEFAULT_DESCRIPTION = "A blend playlist created by VibeLink based on shared music taste"


async def _artist_top_tracks(client: ProviderClient, artist_id: str) -> List[Dict[str, Any]]:
    """An artist whose tracks cannot be fetched contributes none."""
    try:
        data = await client.call(
            "GET", f"/artists/{artist_id}/top-tracks", params={"market": "US"}
        )
    except (ProviderRequestFailed, ProviderUnavailable) as exc:
        logger.warning("Skipping artist %s in blend: %s", artist_id, exc.message)
        return []
    return (data or {}).get("tracks", [])


@router.post("/create-blend")
async def create_blend(
    body: BlendPlaylistRequest,
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    """Create a private playlist from the top tracks of shared artists."""
    profile = await client.get_profile()

    results = await asyncio.gather(
        *(_artist_top_tracks(client, a) for a in body.common_artist_ids[:_BLEND_MAX_ARTISTS]),
        return_exceptions=True,
    )
    # Every fetch has finished; the first hard failure (e.g. Unauthorized) wins.
    for result in results:
        if isinstance(result, BaseException):
            raise result

    track_uris: List[str] = []
    for tracks in results:
        for track in tracks[:_BLEND_TRACKS_PER_ARTIST]:
            uri = track.get("uri")
            if uri and uri not in track_uris:
                track_uris.append(uri)

    if not track_uris:
        raise InvalidInput("Could not find tracks from the common artists")

    playlist = await client.call(
        "POST",
        f"/users/{profile['id']}/playlists",
        json={
            "name": sanitize_string(body.playlist_name) or _DEFAULT_NAME,
            "description": sanitize_string(body.playlist_description) or _DEFAULT_DESCRIPTION,
            "public": False,
        },
    )
    await client.call("POST", f"/playlists/{playlist['id']}/tracks", json={"uris": track_uris})

    logger.info("Created blend playlist %s with %d tracks", playlist["id"], len(track_uris))
    return {
        "message": "Playlist created successfully",
        "playlist": {
            "id": playlist["id"],
            "name": playlist.get("name"),
            "url": (playlist.get("external_urls") or {}).get("spotify"),
            "track_count": len(track_uris),
        },
    }


@router.get("/recommendations")
async def recommendations(
    seed_artists: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.call(
        "GET",
        "/recommendations",
        params={"seed_artists": validate_seed_artists(seed_artists), "limit": validate_limit(limit)},
    )


@router.get("/my-playlists")
async def my_playlists(
    limit: Optional[str] = Query(None),
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.call("GET", "/me/playlists", params={"limit": validate_limit(limit)})


@router.get("/{playlist_id}")
async def playlist_detail(
    playlist_id: str,
    client: ProviderClient = Depends(provider_client),
) -> Dict[str, Any]:
    return await client.call("GET", f"/playlists/{playlist_id}")
