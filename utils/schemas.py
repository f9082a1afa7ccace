"""
Pydantic schemas shared by the relay core and the HTTP layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Provider entities
# ═══════════════════════════════════════════════════════════════════════════════


class Entity(BaseModel):
    """
    One ranked item of a preference set (an artist, a track, …).

    Only ``id`` is interpreted; every other provider field is carried
    through untouched for display.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    name: Optional[str] = None


class Identity(BaseModel):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    images: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "Identity":
        """Build from the provider's ``/me`` payload."""
        images = profile.get("images") or []
        return cls(
            id=str(profile["id"]),
            display_name=profile.get("display_name"),
            email=profile.get("email"),
            image_url=images[0].get("url") if images else None,
            images=images,
        )


class UserRef(BaseModel):
    id: str
    name: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Comparison
# ═══════════════════════════════════════════════════════════════════════════════


class ComparisonResult(BaseModel):
    common: List[Entity] = Field(default_factory=list)
    common_count: int = 0
    unique_to_a: List[Entity] = Field(default_factory=list)  # preview only
    unique_to_b: List[Entity] = Field(default_factory=list)  # preview only
    match_percentage: str = "0.00"
    total_a: int = 0
    total_b: int = 0


# ═══════════════════════════════════════════════════════════════════════════════
# Preference links
# ═══════════════════════════════════════════════════════════════════════════════


class Acceptance(BaseModel):
    user_id: str
    user_name: Optional[str] = None
    accepted_at: datetime = Field(default_factory=_utcnow)


class PreferenceLink(BaseModel):
    link_id: str
    owner: Identity
    top_artists: List[Entity]
    created_at: datetime = Field(default_factory=_utcnow)
    accepted_by: List[Acceptance] = Field(default_factory=list)


class CreatedLink(BaseModel):
    link_id: str
    share_url: str
    message: str = "Preference link created successfully"


class LinkSummary(BaseModel):
    """Public view of a link — never includes the preference set itself."""

    link_id: str
    user_name: Optional[str] = None
    user_image: Optional[str] = None
    created_at: datetime
    top_artists_count: int


class OwnedLink(BaseModel):
    link_id: str
    created_at: datetime
    accepted_by_count: int
    accepted_by: List[Acceptance]


class AcceptResult(BaseModel):
    message: str = "Preference link accepted"
    comparison: ComparisonResult
    original_user: UserRef
    accepting_user: UserRef


# ═══════════════════════════════════════════════════════════════════════════════
# Request bodies
# ═══════════════════════════════════════════════════════════════════════════════


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class BlendPlaylistRequest(BaseModel):
    common_artist_ids: List[str] = Field(..., min_length=1, max_length=50)
    playlist_name: Optional[str] = None
    playlist_description: Optional[str] = None
