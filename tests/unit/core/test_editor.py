import pytest

from banner_animator.core.frame_ids import GifFrameId
from banner_animator.core.models import EasingType, SyncMode
from banner_animator.core.playback import PlaybackMode
from banner_animator.core.timeline_clock import ClipDragSession


@pytest.fixture()
def linked(editor, make_animation):
    editor.auto_link()
    editor.add_animation("layer-1-2", make_animation(0.0, 1.0))
    return editor


def _starts(editor, layer_id):
    return [a.start_time for a in editor.store.get_layer(layer_id).animations]


class TestClipEdits:

    def test_add_animation_syncs_and_fits(self, linked, make_animation):
        added = linked.add_animation("layer-1-2", make_animation(4.8, 1.0))
        assert (added.start_time, added.duration) == (4.0, 1.0)
        assert _starts(linked, "layer-2-2") == [0.0, 4.0]
        assert _starts(linked, "layer-3-2") == [0.0, 4.0]
        assert linked.add_animation("missing", make_animation()) is None

    def test_move_clip_syncs_siblings(self, linked):
        result = linked.move_clip("layer-1-2", 0, 1.0)
        assert result.start_time == 1.0
        assert _starts(linked, "layer-2-2") == [1.0]

    def test_edit_without_sync(self, linked):
        linked.resize_clip_right("layer-1-2", 0, 1.0, sync=False)
        assert linked.store.get_layer("layer-1-2").animations[0].duration == 2.0
        assert linked.store.get_layer("layer-2-2").animations[0].duration == 1.0

    def test_resize_left_keeps_end(self, linked):
        linked.move_clip("layer-1-2", 0, 2.0)
        result = linked.resize_clip_left("layer-1-2", 0, -1.0)
        assert (result.start_time, result.duration) == (1.0, 2.0)

    def test_locked_layer_ignores_edits(self, linked):
        assert linked.toggle_layer_lock("layer-1-2") is True
        result = linked.move_clip("layer-1-2", 0, 1.0)
        assert result.start_time == 0.0
        assert linked.toggle_layer_lock("layer-1-2") is False
        assert linked.toggle_layer_lock("missing") is None

    def test_unknown_clip(self, linked):
        assert linked.move_clip("layer-1-2", 5, 1.0) is None
        assert linked.move_clip("missing", 0, 1.0) is None

    def test_clip_drag_syncs_once_on_release(self, linked):
        with linked.clip_drag("layer-1-2", 0) as session:
            session.apply(0.5)
            session.apply(0.5)
            assert _starts(linked, "layer-1-2") == [1.0]
            assert _starts(linked, "layer-2-2") == [0.0]
        assert _starts(linked, "layer-2-2") == [1.0]
        assert _starts(linked, "layer-3-2") == [1.0]

    def test_clip_drag_aborted_does_not_sync(self, linked):
        with pytest.raises(RuntimeError):
            with linked.clip_drag("layer-1-2", 0, ClipDragSession.RESIZE_RIGHT) as session:
                session.apply(1.0)
                raise RuntimeError("cancelled")
        assert linked.store.get_layer("layer-1-2").animations[0].duration == 2.0
        assert linked.store.get_layer("layer-2-2").animations[0].duration == 1.0

    def test_clip_drag_unknown_yields_none(self, linked):
        with linked.clip_drag("layer-1-2", 3) as session:
            assert session is None

    def test_set_track_duration_refits_clips(self, linked, make_animation):
        linked.add_animation("layer-1-1", make_animation(3.0, 1.0))
        linked.set_track_duration(2.0)
        anim = linked.store.get_layer("layer-1-1").animations[0]
        assert (anim.start_time, anim.duration) == (1.0, 1.0)
        assert linked.scheduler.track_duration == 2.0
        assert linked.clock.track_duration == 2.0


class TestAnimations:

    def test_update_animation(self, linked):
        result = linked.update_animation("layer-1-2", 0, easing="linear", opacity=0.5)
        assert result.easing == EasingType.LINEAR
        sibling = linked.store.get_layer("layer-3-2").animations[0]
        assert sibling.easing == EasingType.LINEAR
        assert sibling.opacity == 0.5

    def test_update_rejects_timing_fields(self, linked):
        with pytest.raises(ValueError):
            linked.update_animation("layer-1-2", 0, start_time=2.0)

    def test_remove_animation_syncs(self, linked):
        assert linked.remove_animation("layer-1-2", 0) is True
        assert linked.store.get_layer("layer-2-2").animations == []
        assert linked.remove_animation("layer-1-2", 0) is False


class TestKeyframes:

    def test_add_keyframe_keeps_one_per_time(self, editor):
        first = editor.add_keyframe("layer-1-2", 1.0, {"opacity": 0.5})
        assert editor.add_keyframe("layer-1-2", 1.0, {"opacity": 1.0}) is first
        editor.add_keyframe("layer-1-2", 0.5)

        keyframes = editor.store.get_layer("layer-1-2").keyframes
        assert [k.time for k in keyframes] == [0.5, 1.0]
        assert keyframes[1].properties == {"opacity": 0.5}
        assert editor.add_keyframe("missing", 1.0) is None

    def test_add_keyframe_clamps_to_track(self, editor):
        assert editor.add_keyframe("layer-1-2", 7.0).time == 5.0
        assert editor.add_keyframe("layer-1-2", -1.0).time == 0.0
        assert editor.add_keyframe("layer-1-2", 9.0) is editor.store.get_layer("layer-1-2").keyframes[-1]

    def test_delete_keyframe(self, editor):
        editor.add_keyframe("layer-1-2", 2.0)
        assert editor.delete_keyframe("layer-1-2", 2.0) is True
        assert editor.delete_keyframe("layer-1-2", 2.0) is False
        assert editor.delete_keyframe("missing", 2.0) is False
        assert editor.store.get_layer("layer-1-2").keyframes == []

    def test_snap_time_prefers_keyframes(self, editor):
        editor.add_keyframe("layer-1-2", 1.01)
        editor.add_keyframe("layer-2-1", 3.0)

        assert editor.keyframe_times() == [1.01, 3.0]
        assert editor.keyframe_times("layer-1-2") == [1.01]
        assert editor.keyframe_times("missing") == []
        assert editor.snap_time(1.0, "layer-1-2") == 1.01
        assert editor.snap_time(1.0, "layer-1-1") == pytest.approx(1.0)
        assert editor.snap_time(1.0) == 1.01
        assert editor.snap_time(6.0) == 5.0

    def test_set_track_duration_refits_keyframes(self, editor):
        for time in (1.0, 3.0, 4.5):
            editor.add_keyframe("layer-1-2", time)
        editor.set_track_duration(3.0)
        assert editor.keyframe_times("layer-1-2") == [1.0, 3.0]


class TestLinking:

    def test_link_unlink_through_editor(self, linked):
        assert linked.unlink_layer("layer-3-2") is True
        linked.move_clip("layer-1-2", 0, 1.0)
        assert _starts(linked, "layer-3-2") == [0.0]
        group = linked.link_layer("layer-3-2")
        assert "layer-3-2" in group

    def test_back_to_full_mode_resyncs_from_main(self, linked):
        linked.set_sync_mode("layer-2-2", SyncMode.INDEPENDENT)
        linked.move_clip("layer-1-2", 0, 2.0)
        assert _starts(linked, "layer-2-2") == [0.0]

        assert linked.set_sync_mode("layer-2-2", SyncMode.FULL) is True
        assert _starts(linked, "layer-2-2") == [2.0]

    def test_animation_override(self, linked):
        anim_id = linked.store.get_layer("layer-2-2").animations[0].id
        assert linked.toggle_animation_override("layer-2-2", anim_id) is True
        linked.move_clip("layer-1-2", 0, 1.0)
        assert _starts(linked, "layer-2-2") == [0.0]
        assert _starts(linked, "layer-3-2") == [1.0]


class TestGifFrames:

    def test_toggle_visibility_reloads_sequence(self, editor):
        assert editor.select_ad_size("frame-1") is True
        change = editor.toggle_layer_visibility("gif-frame-frame-1-2", "layer-1-3")
        assert change.propagated_to == [GifFrameId("frame-2", 2)]
        assert [e.frame_id for e in editor.scheduler.entries] == ["gif-frame-frame-1-2"]
        assert editor.scheduler.sequence_duration == pytest.approx(7.5)

    def test_select_unknown_ad_size(self, editor):
        assert editor.select_ad_size("frame-9") is False
        assert editor.active_ad_size_id is None

    def test_frame_delay_and_override(self, editor):
        editor.select_ad_size("frame-2")
        editor.toggle_layer_visibility("gif-frame-frame-2-1", "layer-2-1")
        assert editor.set_frame_delay("gif-frame-frame-2-1", 1.0) is True
        assert editor.scheduler.sequence_duration == pytest.approx(6.0)
        assert editor.set_frame_delay("gif-frame-frame-2-4", 1.0) is False
        assert editor.toggle_layer_override("gif-frame-frame-2-1", "layer-2-2") is True

    def test_normalize_frame_counts(self, editor):
        editor.select_ad_size("frame-3")
        editor.toggle_layer_visibility("gif-frame-frame-1-2", "layer-1-1")
        added = editor.normalize_frame_counts()
        assert GifFrameId("frame-3", 1) in added
        assert len(editor.scheduler.entries) == 2

    def test_frame_edits_do_not_reannounce_active_frame(self, editor):
        editor.toggle_layer_visibility("gif-frame-frame-1-1", "layer-1-1")
        editor.toggle_layer_visibility("gif-frame-frame-1-2", "layer-1-1")
        editor.select_ad_size("frame-1")
        events = []
        editor.scheduler.add_active_frame_listener(events.append)

        editor.toggle_layer_visibility("gif-frame-frame-1-2", "layer-1-2")
        editor.set_frame_delay("gif-frame-frame-1-2", 1.0)

        assert events == []
        assert editor.scheduler.active_frame_id == "gif-frame-frame-1-1"

    def test_remove_active_ad_size_clears_sequence(self, editor):
        editor.select_ad_size("frame-1")
        editor.toggle_layer_visibility("gif-frame-frame-1-1", "layer-1-1")
        assert editor.remove_ad_size("frame-1") is True
        assert editor.active_ad_size_id is None
        assert editor.scheduler.entries == []


class TestPlayback:

    def test_gif_playback_follows_frames(self, editor, ticker):
        editor.select_ad_size("frame-1")
        editor.toggle_layer_visibility("gif-frame-frame-1-1", "layer-1-1")
        editor.toggle_layer_visibility("gif-frame-frame-1-2", "layer-1-2")
        editor.set_frame_delay("gif-frame-frame-1-1", 0.0)

        editor.play(PlaybackMode.GIF_SEQUENCE)
        ticker.advance(6.0)

        assert editor.scheduler.active_frame_id == "gif-frame-frame-1-2"
        assert editor.scheduler.local_time == 0.0
        editor.pause()
        assert not editor.scheduler.is_playing

    def test_seek(self, editor):
        editor.seek(2.0)
        assert editor.scheduler.current_time == 2.0


class TestOutput:

    def test_layers_of_returns_copies(self, editor):
        layers = editor.layers_of("frame-3")
        assert [l.id for l in layers] == ["layer-3-1", "layer-3-2", "layer-3-3"]
        layers[0].visible = False
        assert editor.store.get_layer("layer-3-1").visible is True
        assert editor.layers_of("frame-9") == []

    def test_snapshot_includes_links(self, linked):
        snap = linked.snapshot()
        assert len(snap["link_groups"]) == 4
