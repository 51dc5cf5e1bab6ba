import itertools

import pytest

from banner_animator.core.link_registry import LinkRegistry, compute_groups
from banner_animator.core.models import Layer, SyncMode


@pytest.fixture()
def registry(store):
    return LinkRegistry(store)


def _groups_by_name(store):
    result = {}
    for group in store.link_groups.values():
        name = store.get_layer(group.main_layer_id).name
        result[name] = group
    return result


class TestAutoLink:

    def test_groups_layers_by_name(self, store, registry):
        groups = registry.auto_link()
        assert len(groups) == 4
        by_name = _groups_by_name(store)
        assert by_name["Background"].member_ids == ["layer-1-1", "layer-2-1", "layer-3-1"]
        assert by_name["Logo"].member_ids == ["layer-1-3", "layer-2-3"]
        assert by_name["Button"].member_ids == ["layer-1-4", "layer-2-4", "layer-3-3"]

    def test_first_member_is_main(self, store, registry):
        registry.auto_link()
        for group in store.link_groups.values():
            assert group.main_layer_id == group.member_ids[0]
            mains = [m for m in group.member_ids if store.get_layer(m).link.is_main]
            assert mains == [group.main_layer_id]

    def test_is_deterministic_and_keeps_group_ids(self, store, registry):
        first = registry.auto_link()
        second = registry.auto_link()
        assert [g.to_dict() for g in first] == [g.to_dict() for g in second]

    def test_keeps_sync_mode_and_overrides_on_relink(self, store, registry):
        registry.auto_link()
        registry.set_sync_mode("layer-2-2", SyncMode.PARTIAL)
        store.get_layer("layer-2-2").link.overrides.add("anim-x")
        registry.auto_link()
        link = store.get_layer("layer-2-2").link
        assert link.sync_mode == SyncMode.PARTIAL
        assert link.overrides == {"anim-x"}

    def test_only_first_duplicate_name_is_linked(self, store, registry):
        store.add_layer("frame-2", Layer(id="layer-2-dup", name="Logo"))
        registry.auto_link()
        assert store.get_layer("layer-2-dup").link is None
        assert registry.linked_layer_ids_of("layer-1-3") == ["layer-2-3"]

    def test_unique_names_are_not_linked(self, store, registry):
        store.add_layer("frame-1", Layer(id="layer-1-only", name="Badge"))
        registry.auto_link()
        assert not registry.is_linked("layer-1-only")


class TestComputeGroups:

    def test_does_not_mutate_layers(self, store):
        counter = itertools.count(1)
        groups = compute_groups(store.ad_sizes.values(), id_factory=lambda: f"g{next(counter)}")
        assert [g.group_id for g in groups] == ["g1", "g2", "g3", "g4"]
        assert all(layer.link is None for _, layer in store.iter_layers())
        assert store.link_groups == {}

    def test_reuses_existing_group_id(self, store, registry):
        registry.auto_link()
        existing = registry.group_of("layer-1-1").group_id
        groups = compute_groups(store.ad_sizes.values(), id_factory=lambda: "fresh")
        assert existing in [g.group_id for g in groups]


class TestLinkUnlink:

    def test_unlink_then_link_restores_membership(self, store, registry):
        registry.auto_link()
        members = set(registry.group_of("layer-2-2").member_ids)

        assert registry.unlink("layer-2-2") is True
        assert not registry.is_linked("layer-2-2")
        assert "layer-2-2" not in registry.group_of("layer-1-2")

        group = registry.link("layer-2-2")
        assert set(group.member_ids) == members
        assert group.member_ids == ["layer-1-2", "layer-2-2", "layer-3-2"]

    def test_unlinking_main_promotes_next_member(self, store, registry):
        registry.auto_link()
        group = registry.group_of("layer-1-1")
        registry.unlink("layer-1-1")
        assert group.main_layer_id == "layer-2-1"
        assert store.get_layer("layer-2-1").link.is_main is True
        assert registry.main_layer_of(group.group_id).id == "layer-2-1"

    def test_group_dissolves_below_two_members(self, store, registry):
        registry.auto_link()
        group_id = registry.group_of("layer-1-3").group_id
        unlinked = []
        registry.add_unlink_listener(unlinked.append)

        registry.unlink("layer-1-3")

        assert group_id not in store.link_groups
        assert store.get_layer("layer-2-3").link is None
        assert sorted(unlinked) == ["layer-1-3", "layer-2-3"]

    def test_unlink_unlinked_layer_is_noop(self, registry):
        assert registry.unlink("layer-1-1") is False
        assert registry.unlink("missing") is False

    def test_link_creates_group_from_unlinked_siblings(self, store, registry):
        group = registry.link("layer-2-3")
        assert group.member_ids == ["layer-1-3", "layer-2-3"]
        assert group.main_layer_id == "layer-1-3"
        assert registry.link("layer-2-3") is group

    def test_link_without_sibling_returns_none(self, store, registry):
        store.add_layer("frame-3", Layer(id="layer-3-only", name="Badge"))
        assert registry.link("layer-3-only") is None
        assert registry.link("missing") is None

    def test_link_rejects_shadowed_duplicate(self, store, registry):
        store.add_layer("frame-1", Layer(id="layer-1-dup", name="Logo"))
        assert registry.link("layer-1-dup") is None

    def test_removed_layer_leaves_its_group(self, store, registry):
        registry.auto_link()
        store.remove_layer("layer-3-2")
        assert registry.linked_layer_ids_of("layer-1-2") == ["layer-2-2"]

    def test_removed_ad_size_leaves_groups(self, store, registry):
        registry.auto_link()
        store.remove_ad_size("frame-1")
        group = registry.group_of("layer-2-1")
        assert group.member_ids == ["layer-2-1", "layer-3-1"]
        assert group.main_layer_id == "layer-2-1"
        assert not registry.is_linked("layer-2-3")


class TestSettings:

    def test_set_sync_mode_requires_link(self, store, registry):
        assert registry.set_sync_mode("layer-1-1", SyncMode.PARTIAL) is False
        registry.auto_link()
        assert registry.set_sync_mode("layer-1-1", "partial") is True
        assert store.get_layer("layer-1-1").link.sync_mode == SyncMode.PARTIAL

    def test_toggle_animation_override(self, store, registry, make_animation):
        registry.auto_link()
        anim = make_animation()
        store.get_layer("layer-2-1").animations.append(anim)

        assert registry.toggle_animation_override("layer-2-1", anim.id) is True
        assert anim.id in store.get_layer("layer-2-1").link.overrides
        assert registry.toggle_animation_override("layer-2-1", anim.id) is False
        assert anim.id not in store.get_layer("layer-2-1").link.overrides
        assert registry.toggle_animation_override("layer-2-1", "nope") is None
