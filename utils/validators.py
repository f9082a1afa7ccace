"""
Input validators used by the route layer and the link registry.

All of them raise ``InvalidInput`` so the caller gets a stable
``invalid_input`` error instead of a provider round-trip.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from utils.errors import InvalidInput
from utils.schemas import Entity

VALID_TIME_RANGES = ("short_term", "medium_term", "long_term")
MAX_LIMIT = 50
MAX_SEED_ARTISTS = 5
MAX_TEXT_LENGTH = 500


def validate_time_range(time_range: Optional[str]) -> str:
    if time_range is None:
        return "medium_term"
    if time_range not in VALID_TIME_RANGES:
        raise InvalidInput(
            f"time_range must be one of: {', '.join(VALID_TIME_RANGES)}"
        )
    return time_range


def validate_limit(limit: Optional[Any], default: int = 20) -> int:
    if limit is None:
        return default
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise InvalidInput(f"limit must be a number between 1 and {MAX_LIMIT}")
    if not 1 <= value <= MAX_LIMIT:
        raise InvalidInput(f"limit must be a number between 1 and {MAX_LIMIT}")
    return value


def validate_seed_artists(seed_artists: Optional[str]) -> str:
    if not seed_artists:
        raise InvalidInput(
            "seed_artists parameter is required (comma-separated artist IDs)"
        )
    ids = [s.strip() for s in seed_artists.split(",") if s.strip()]
    if not ids:
        raise InvalidInput("seed_artists must contain at least one artist ID")
    if len(ids) > MAX_SEED_ARTISTS:
        raise InvalidInput(f"Maximum {MAX_SEED_ARTISTS} seed artists allowed")
    return ",".join(ids)


def validate_link_id(link_id: str) -> str:
    """Link ids are UUID strings; anything else is rejected before lookup."""
    try:
        return str(uuid.UUID(link_id))
    except (TypeError, ValueError, AttributeError):
        raise InvalidInput(f"Malformed link id: {link_id!r}")


def validate_preference_set(items: Iterable[Any], max_entities: int) -> List[Entity]:
    """
    Coerce provider items into ``Entity`` objects, preserving order.

    Raises ``InvalidInput`` for items without an ``id``, for repeated ids
    or for sets larger than *max_entities*.
    """
    try:
        entities = [
            item if isinstance(item, Entity) else Entity.model_validate(item)
            for item in items
        ]
    except ValidationError as exc:
        raise InvalidInput(
            "Preference set contains malformed entities",
            details=[err["msg"] for err in exc.errors()],
        ) from exc
    if len(entities) > max_entities:
        raise InvalidInput(
            f"Preference set has {len(entities)} entities; at most {max_entities} allowed"
        )
    seen = set()
    repeated = []
    for entity in entities:
        if entity.id in seen and entity.id not in repeated:
            repeated.append(entity.id)
        seen.add(entity.id)
    if repeated:
        raise InvalidInput("Preference set contains repeated entity ids", details=repeated)
    return entities


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """Strip angle brackets and surrounding whitespace; cap the length."""
    if value is None:
        return None
    return value.replace("<", "").replace(">", "").strip()[:MAX_TEXT_LENGTH]
