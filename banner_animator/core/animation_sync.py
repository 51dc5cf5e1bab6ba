"""
Animation sync engine

Propagates the animation list of an edited layer to the other members of
its link group. Slots a member has overridden are left alone.
"""

from typing import List, Dict

from .link_registry import LinkRegistry
from .log import get_logger
from .models import Animation, Layer, SyncMode, new_id
from .store import EntityStore

log = get_logger(__name__)


def merge_animations(source: Layer, target: Layer, mode: SyncMode) -> List[Animation]:
    """
    Build the target's new animation list from the source's, index by index.

    FULL:    the target mirrors the source's length. Overridden target slots are
             kept as they are; surplus non-overridden slots are dropped.
    PARTIAL: only slots that already exist on the target are replaced.

    A replaced slot keeps the target's own animation id; an appended slot gets
    a fresh one, so ids stay unique across the group.
    """
    result: List[Animation] = []
    for index, src_anim in enumerate(source.animations):
        existing = target.get_animation(index)
        if existing is None:
            if mode == SyncMode.PARTIAL:
                break
            copy = src_anim.copy()
            copy.id = new_id("anim")
            copy.overridden = False
            result.append(copy)
        elif target.is_slot_overridden(index):
            result.append(existing)
        else:
            copy = src_anim.copy()
            copy.id = existing.id
            copy.overridden = False
            result.append(copy)

    for index in range(len(source.animations), len(target.animations)):
        if mode == SyncMode.PARTIAL or target.is_slot_overridden(index):
            result.append(target.animations[index])
    return result


class AnimationSyncEngine:
    """Pushes animation edits across a link group."""

    def __init__(self, store: EntityStore, registry: LinkRegistry):
        self.store = store
        self.registry = registry
        self._pending: List[str] = []
        registry.add_unlink_listener(self._drop_pending)

    def sync_from(self, layer_id: str) -> Dict[str, List[Layer]]:
        """
        Mirror the source layer's animations onto its linked siblings.

        Group membership is resolved at call time, so a layer unlinked before
        this runs is neither a source nor a target.

        Returns:
            Snapshot of all layers keyed by ad size id
        """
        source = self.store.get_layer(layer_id)
        if source is None:
            log.warning("Cannot sync from unknown layer %s", layer_id)
            return self.store.layers_by_ad_size()
        group = self.registry.group_of(layer_id)
        if group is None:
            return self.store.layers_by_ad_size()

        for member_id in group.member_ids:
            if member_id == layer_id:
                continue
            member = self.store.get_layer(member_id)
            if member is None:
                log.debug("Sibling %s of %s is missing, skipping", member_id, layer_id)
                continue
            mode = member.link.sync_mode if member.link else SyncMode.FULL
            if mode == SyncMode.INDEPENDENT:
                continue
            member.animations = merge_animations(source, member, mode)
        log.debug("Synced %s to %d siblings", layer_id, len(group) - 1)
        return self.store.layers_by_ad_size()

    # ----- Deferred sync -----
    def defer(self, layer_id: str):
        """Queue a sync to run on the next flush()"""
        if layer_id not in self._pending:
            self._pending.append(layer_id)

    def flush(self) -> int:
        """Run queued syncs in order. Returns how many ran."""
        pending, self._pending = self._pending, []
        for layer_id in pending:
            self.sync_from(layer_id)
        return len(pending)

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def _drop_pending(self, layer_id: str):
        if layer_id in self._pending:
            self._pending.remove(layer_id)
            log.debug("Dropped pending sync of unlinked layer %s", layer_id)
