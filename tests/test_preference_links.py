"""
Tests for the preference link registry.
"""

import asyncio
import uuid

import pytest

from core.preference_links import PreferenceLinkRegistry
from utils.errors import InvalidInput, LinkNotFound
from utils.schemas import Entity, Identity

U = Identity(id="user-u", display_name="U", image_url="https://img/u.png")
V = Identity(id="user-v", display_name="V")


def _set(*ids: str) -> list[Entity]:
    return [Entity(id=i, name=i.upper()) for i in ids]


@pytest.fixture
def registry():
    return PreferenceLinkRegistry()


class TestCreateAndRead:
    @pytest.mark.asyncio
    async def test_create_returns_share_url(self, registry):
        created = await registry.create_link(U, _set("a", "b"), "http://testserver/")
        uuid.UUID(created.link_id)
        assert created.share_url == f"http://testserver/api/preference/accept/{created.link_id}"

    @pytest.mark.asyncio
    async def test_read_is_summary_only(self, registry):
        created = await registry.create_link(U, _set("a", "b", "c"), "http://x")
        summary = await registry.read_link(created.link_id)
        assert summary.user_name == "U"
        assert summary.user_image == "https://img/u.png"
        assert summary.top_artists_count == 3
        assert "top_artists" not in summary.model_dump()

    @pytest.mark.asyncio
    async def test_unknown_link(self, registry):
        with pytest.raises(LinkNotFound):
            await registry.read_link(str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_link_id(self, registry):
        with pytest.raises(InvalidInput):
            await registry.read_link("not-a-uuid")

    @pytest.mark.asyncio
    async def test_oversized_set_rejected(self):
        registry = PreferenceLinkRegistry(max_entities=3)
        with pytest.raises(InvalidInput):
            await registry.create_link(U, _set("a", "b", "c", "d"), "http://x")

    @pytest.mark.asyncio
    async def test_repeated_ids_rejected(self, registry):
        with pytest.raises(InvalidInput) as excinfo:
            await registry.create_link(U, _set("a", "b", "a"), "http://x")
        assert excinfo.value.details == ["a"]

    @pytest.mark.asyncio
    async def test_accepts_raw_provider_items(self, registry):
        created = await registry.create_link(U, [{"id": "a", "name": "A", "popularity": 80}], "http://x")
        assert (await registry.read_link(created.link_id)).top_artists_count == 1

    @pytest.mark.asyncio
    async def test_item_without_id_rejected(self, registry):
        with pytest.raises(InvalidInput):
            await registry.create_link(U, [{"name": "anonymous"}], "http://x")

    @pytest.mark.asyncio
    async def test_snapshot_is_not_live(self, registry):
        owner_set = _set("a", "b", "c")
        created = await registry.create_link(U, owner_set, "http://x")
        owner_set.append(Entity(id="d"))
        owner_set[0].name = "changed"

        result = await registry.accept_link(created.link_id, V, _set("a", "d"))
        assert [e.id for e in result.comparison.common] == ["a"]
        assert result.comparison.common[0].name == "A"


class TestAccept:
    @pytest.mark.asyncio
    async def test_documented_example(self, registry):
        created = await registry.create_link(U, _set("a", "b", "c"), "http://x")
        result = await registry.accept_link(created.link_id, V, _set("b", "c", "d"))

        assert [e.id for e in result.comparison.common] == ["b", "c"]
        assert [e.id for e in result.comparison.unique_to_a] == ["a"]
        assert [e.id for e in result.comparison.unique_to_b] == ["d"]
        assert result.comparison.match_percentage == "66.67"
        assert result.original_user.id == "user-u"
        assert result.accepting_user.name == "V"

    @pytest.mark.asyncio
    async def test_unknown_link(self, registry):
        with pytest.raises(LinkNotFound):
            await registry.accept_link(str(uuid.uuid4()), V, _set("a"))

    @pytest.mark.asyncio
    async def test_accept_twice_is_idempotent_but_recomputes(self, registry):
        created = await registry.create_link(U, _set("a", "b", "c"), "http://x")
        first = await registry.accept_link(created.link_id, V, _set("a"))
        second = await registry.accept_link(created.link_id, V, _set("a", "b", "c"))

        assert first.comparison.match_percentage == "33.33"
        assert second.comparison.match_percentage == "100.00"
        [owned] = await registry.list_links("user-u")
        assert owned.accepted_by_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_accepts_by_same_identity_append_once(self, registry):
        created = await registry.create_link(U, _set("a"), "http://x")
        await asyncio.gather(
            *(registry.accept_link(created.link_id, V, _set("a")) for _ in range(10))
        )
        [owned] = await registry.list_links("user-u")
        assert owned.accepted_by_count == 1

    @pytest.mark.asyncio
    async def test_distinct_acceptors_are_recorded_in_order(self, registry):
        created = await registry.create_link(U, _set("a"), "http://x")
        w = Identity(id="user-w", display_name="W")
        await registry.accept_link(created.link_id, V, _set("a"))
        await registry.accept_link(created.link_id, w, [])
        [owned] = await registry.list_links("user-u")
        assert [a.user_id for a in owned.accepted_by] == ["user-v", "user-w"]


class TestListLinks:
    @pytest.mark.asyncio
    async def test_only_owners_links_in_creation_order(self, registry):
        first = await registry.create_link(U, _set("a"), "http://x")
        await registry.create_link(V, _set("b"), "http://x")
        second = await registry.create_link(U, _set("c"), "http://x")

        owned = await registry.list_links("user-u")
        assert [o.link_id for o in owned] == [first.link_id, second.link_id]
        assert all(o.accepted_by_count == 0 for o in owned)

    @pytest.mark.asyncio
    async def test_no_links(self, registry):
        assert await registry.list_links("nobody") == []
