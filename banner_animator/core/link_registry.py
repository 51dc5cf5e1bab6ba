"""
Link registry

Decides which layers, across all loaded ad sizes, are "the same element".
Layers are joined by name; each group has exactly one main member.
"""

import uuid
from typing import List, Optional, Dict, Callable, Iterable

from .log import get_logger
from .models import AdSize, Layer, LinkGroup, LinkInfo, SyncMode
from .store import EntityStore

log = get_logger(__name__)


def _new_group_id() -> str:
    return f"group-{uuid.uuid4().hex[:12]}"


def compute_groups(ad_sizes: Iterable[AdSize],
                   id_factory: Optional[Callable[[], str]] = None) -> List[LinkGroup]:
    """
    Compute link groups from a snapshot of ad sizes without mutating anything.

    Each ad size contributes at most one member per name (its first layer of that
    name). Members are ordered by ad size order, then layer order; the first member
    is main. A group id already carried by one of the members is reused.
    """
    id_factory = id_factory or _new_group_id
    by_name: Dict[str, List[Layer]] = {}
    for ad_size in ad_sizes:
        seen_here = set()
        for layer in ad_size.layers:
            if not layer.name:
                log.debug("Layer %s in %s has no name, not linkable", layer.id, ad_size.id)
                continue
            if layer.name in seen_here:
                log.debug("Duplicate layer name %r in %s, only the first is linked",
                          layer.name, ad_size.id)
                continue
            seen_here.add(layer.name)
            by_name.setdefault(layer.name, []).append(layer)

    groups: List[LinkGroup] = []
    used_ids = set()
    for name, members in by_name.items():
        if len(members) < 2:
            continue
        group_id = None
        for layer in members:
            if layer.link is not None and layer.link.group_id not in used_ids:
                group_id = layer.link.group_id
                break
        if group_id is None:
            group_id = id_factory()
        used_ids.add(group_id)
        groups.append(LinkGroup(
            group_id=group_id,
            member_ids=[layer.id for layer in members],
            main_layer_id=members[0].id,
        ))
    return groups


class LinkRegistry:
    """Maintains link groups on an EntityStore."""

    def __init__(self, store: EntityStore):
        self.store = store
        self._unlink_listeners: List[Callable[[str], None]] = []
        store.add_layer_removed_listener(self._on_layer_removed)

    # ----- Group computation -----
    def auto_link(self) -> List[LinkGroup]:
        """Recompute all groups from the current layers and apply them"""
        groups = compute_groups(self.store.ad_sizes.values())
        self.apply_groups(groups)
        log.info("Auto-linked %d groups", len(groups))
        return groups

    def apply_groups(self, groups: List[LinkGroup]):
        """Replace the store's link groups with the given ones"""
        previous: Dict[str, LinkInfo] = {}
        for _, layer in self.store.iter_layers():
            if layer.link is not None:
                previous[layer.id] = layer.link
                layer.link = None
        self.store.link_groups = {}
        for group in groups:
            for layer_id in group.member_ids:
                layer = self.store.get_layer(layer_id)
                if layer is None:
                    log.warning("Group %s references unknown layer %s", group.group_id, layer_id)
                    continue
                old = previous.get(layer_id)
                keep = old is not None and old.group_id == group.group_id
                layer.link = LinkInfo(
                    group_id=group.group_id,
                    sync_mode=old.sync_mode if keep else SyncMode.FULL,
                    is_main=layer_id == group.main_layer_id,
                    overrides=set(old.overrides) if keep else set(),
                )
            self.store.link_groups[group.group_id] = group.copy()

    # ----- Explicit link / unlink -----
    def link(self, layer_id: str) -> Optional[LinkGroup]:
        """
        Link a layer with every layer sharing its name.

        Joins the existing group for that name if there is one, otherwise forms a
        new group from all unlinked same-named layers. No-op if already linked.
        """
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot link unknown layer %s", layer_id)
            return None
        if layer.link is not None:
            return self.store.link_groups.get(layer.link.group_id)

        candidates = self._same_name_layers(layer)
        if all(c.id != layer_id for c in candidates):
            log.info("Layer %s shadows an earlier %r in its ad size, not linkable", layer_id, layer.name)
            return None
        for other in candidates:
            if other.link is not None and other.id != layer_id:
                group = self.store.link_groups.get(other.link.group_id)
                if group is None:
                    continue
                if self._ad_size_in_group(group, layer_id):
                    log.debug("Group %s already has a member from this ad size", group.group_id)
                    return None
                group.member_ids.append(layer_id)
                self._order_members(group)
                layer.link = LinkInfo(group_id=group.group_id, sync_mode=other.link.sync_mode)
                log.info("Layer %s joined group %s", layer_id, group.group_id)
                return group

        members = [l for l in candidates if l.link is None]
        if len(members) < 2:
            log.info("Layer %s (%r) has no sibling to link with", layer_id, layer.name)
            return None
        group = LinkGroup(
            group_id=_new_group_id(),
            member_ids=[l.id for l in members],
            main_layer_id=members[0].id,
        )
        for member in members:
            member.link = LinkInfo(group_id=group.group_id, is_main=member.id == group.main_layer_id)
        self.store.link_groups[group.group_id] = group
        log.info("Created group %s for %r with %d layers", group.group_id, layer.name, len(members))
        return group

    def unlink(self, layer_id: str) -> bool:
        """
        Remove a single layer from its group.

        Promotes the next member to main if needed and dissolves the group once
        fewer than two members remain.
        """
        layer = self.store.get_layer(layer_id)
        if layer is None or layer.link is None:
            log.debug("Layer %s is not linked", layer_id)
            return False
        group = self.store.link_groups.get(layer.link.group_id)
        layer.link = None
        if group is not None:
            self._remove_member(group, layer_id)
        self._notify_unlinked(layer_id)
        return True

    def _remove_member(self, group: LinkGroup, layer_id: str):
        if layer_id in group.member_ids:
            group.member_ids.remove(layer_id)
        if len(group.member_ids) <= 1:
            for remaining_id in group.member_ids:
                remaining = self.store.get_layer(remaining_id)
                if remaining is not None:
                    remaining.link = None
                    self._notify_unlinked(remaining_id)
            self.store.link_groups.pop(group.group_id, None)
            log.info("Dissolved group %s", group.group_id)
            return
        if group.main_layer_id == layer_id:
            group.main_layer_id = group.member_ids[0]
            new_main = self.store.get_layer(group.main_layer_id)
            if new_main is not None and new_main.link is not None:
                new_main.link.is_main = True
            log.info("Promoted %s to main of group %s", group.main_layer_id, group.group_id)

    def _on_layer_removed(self, layer_id: str):
        self.unlink(layer_id)

    # ----- Settings -----
    def set_sync_mode(self, layer_id: str, mode: SyncMode) -> bool:
        layer = self.store.get_layer(layer_id)
        if layer is None or layer.link is None:
            log.warning("Cannot set sync mode on unlinked layer %s", layer_id)
            return False
        layer.link.sync_mode = SyncMode(mode)
        return True

    def toggle_animation_override(self, layer_id: str, animation_id: str) -> Optional[bool]:
        """Flip whether an animation of a layer is exempt from inbound sync"""
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot toggle override on unknown layer %s", layer_id)
            return None
        animation = next((a for a in layer.animations if a.id == animation_id), None)
        if animation is None:
            log.warning("Layer %s has no animation %s", layer_id, animation_id)
            return None
        animation.overridden = not animation.overridden
        if layer.link is not None:
            if animation.overridden:
                layer.link.overrides.add(animation_id)
            else:
                layer.link.overrides.discard(animation_id)
        return animation.overridden

    # ----- Queries -----
    def group_of(self, layer_id: str) -> Optional[LinkGroup]:
        layer = self.store.get_layer(layer_id)
        if layer is None or layer.link is None:
            return None
        group = self.store.link_groups.get(layer.link.group_id)
        if group is None or layer_id not in group:
            return None
        return group

    def is_linked(self, layer_id: str) -> bool:
        return self.group_of(layer_id) is not None

    def linked_layer_ids_of(self, layer_id: str) -> List[str]:
        """Other members of the layer's group, in group order"""
        group = self.group_of(layer_id)
        if group is None:
            return []
        return [m for m in group.member_ids if m != layer_id]

    def main_layer_of(self, group_id: str) -> Optional[Layer]:
        group = self.store.link_groups.get(group_id)
        if group is None or group.main_layer_id is None:
            return None
        return self.store.get_layer(group.main_layer_id)

    def add_unlink_listener(self, callback: Callable[[str], None]):
        self._unlink_listeners.append(callback)

    # ----- Helpers -----
    def _same_name_layers(self, layer: Layer) -> List[Layer]:
        result = []
        for ad_size in self.store.ad_sizes.values():
            match = ad_size.find_layer_by_name(layer.name)
            if match is not None:
                result.append(match)
        return result

    def _ad_size_in_group(self, group: LinkGroup, layer_id: str) -> bool:
        found = self.store.find_layer(layer_id)
        if found is None:
            return False
        ad_size = found[0]
        return any(ad_size.get_layer(m) is not None for m in group.member_ids)

    def _order_members(self, group: LinkGroup):
        order = {layer.id: i for i, (_, layer) in enumerate(self.store.iter_layers())}
        group.member_ids.sort(key=lambda m: order.get(m, len(order)))

    def _notify_unlinked(self, layer_id: str):
        for callback in self._unlink_listeners:
            callback(layer_id)
