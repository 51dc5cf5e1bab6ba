import pytest

from banner_animator.core.timeline_clock import (
    TimelineClock, Clip, ClipDragSession, MIN_CLIP_DURATION,
    move_clip, resize_clip_left, resize_clip_right,
)


def test_position_time_mapping_roundtrip():
    clock = TimelineClock(track_duration=5.0, track_width=800)
    for i in range(51):
        t = i * 0.1
        assert clock.time_from_position(clock.position_from_time(t)) == pytest.approx(t)


def test_time_from_position_is_clamped():
    clock = TimelineClock(track_duration=5.0, track_width=500)
    assert clock.time_from_position(-20) == 0.0
    assert clock.time_from_position(10_000) == 5.0
    assert clock.time_from_position(250) == pytest.approx(2.5)


def test_unmeasured_width_uses_nominal():
    clock = TimelineClock(track_duration=4.0)
    assert clock.effective_width == 400
    assert clock.position_from_time(1.0) == pytest.approx(100)
    clock.set_track_width(0)
    assert clock.effective_width == 400
    clock.set_track_width(1000)
    assert clock.position_from_time(1.0) == pytest.approx(250)


def test_move_saturates_at_track_end():
    for delta in (2.5, 10.0, 1e9):
        assert move_clip(Clip(1.0, 1.5), delta, 5.0) == Clip(3.5, 1.5)


def test_move_saturates_at_zero():
    assert move_clip(Clip(1.0, 1.5), -50, 5.0) == Clip(0.0, 1.5)


def test_resize_left_pins_min_duration():
    clip = resize_clip_left(Clip(1.0, 2.0), 5.0, 5.0)
    assert clip.duration == MIN_CLIP_DURATION
    assert clip.start == pytest.approx(2.5)


def test_resize_left_keeps_right_edge_when_hitting_zero():
    clip = resize_clip_left(Clip(1.0, 2.0), -3.0, 5.0)
    assert clip.start == 0.0
    assert clip.end == pytest.approx(3.0)


def test_resize_left_normal():
    assert resize_clip_left(Clip(2.0, 2.0), -0.5, 5.0) == Clip(1.5, 2.5)


def test_resize_right_clamps_both_ways():
    assert resize_clip_right(Clip(1.0, 2.0), 10.0, 5.0) == Clip(1.0, 4.0)
    assert resize_clip_right(Clip(1.0, 2.0), -10.0, 5.0) == Clip(1.0, MIN_CLIP_DURATION)


def test_min_duration_holds_for_any_resize_sequence():
    clock = TimelineClock(track_duration=5.0)
    clip = Clip(1.0, 1.0)
    deltas = [0.3, -2.0, 0.9, 4.0, -0.7, 1.1, -5.0, 0.45, 2.2, -0.01]
    for i, delta in enumerate(deltas):
        clip = clock.resize_left(clip, delta) if i % 2 == 0 else clock.resize_right(clip, delta)
        assert clip.duration >= MIN_CLIP_DURATION
        assert clip.start >= 0.0
        assert clip.end <= 5.0 + 1e-9


def test_fit_brings_clip_inside_track():
    clock = TimelineClock(track_duration=3.0)
    assert clock.fit(Clip(2.5, 2.0)) == Clip(1.0, 2.0)
    assert clock.fit(Clip(0.0, 0.1)) == Clip(0.0, MIN_CLIP_DURATION)


def test_ruler_ticks_intervals():
    clock = TimelineClock(track_duration=2.0)
    ticks = clock.ruler_ticks()
    assert [t.time for t in ticks] == [0.0, 0.5, 1.0, 1.5, 2.0]
    assert ticks[1].label == "0.5s"
    assert [t.is_major for t in ticks] == [True, False, True, False, True]

    long_clock = TimelineClock(track_duration=12.0)
    assert long_clock.ruler_ticks()[1].time == 1.0
    assert long_clock.ruler_ticks(scale=25)[1].time == 2.0


def test_snap_time():
    assert TimelineClock.snap_time(1.01, frame_rate=10) == pytest.approx(1.0)
    assert TimelineClock.snap_time(0.99, frame_rate=30, keyframes=[1.0]) == 1.0
    assert TimelineClock.snap_time(0.5, frame_rate=30, keyframes=[2.0]) == pytest.approx(0.5)


def test_invalid_clock_arguments():
    with pytest.raises(ValueError):
        TimelineClock(track_duration=0)
    with pytest.raises(ValueError):
        TimelineClock(track_duration=1.0, min_clip_duration=2.0)


def test_drag_session_applies_deltas_in_order():
    clock = TimelineClock(track_duration=5.0)
    deltas = [1.0, 1.0, 1.0, -0.5]
    committed = []
    with ClipDragSession(clock, Clip(1.0, 1.5), on_commit=committed.append) as session:
        for d in deltas:
            session.apply(d)

    expected = Clip(1.0, 1.5)
    for d in deltas:
        expected = clock.move(expected, d)
    assert session.current == expected == Clip(3.0, 1.5)
    assert committed == [expected]
    assert len(session.history) == len(deltas) + 1
    assert session.closed


def test_drag_session_ignores_deltas_after_close():
    clock = TimelineClock(track_duration=5.0)
    session = ClipDragSession(clock, Clip(0.0, 1.0), mode=ClipDragSession.RESIZE_RIGHT)
    session.apply(1.0)
    session.close()
    assert session.apply(1.0) == Clip(0.0, 2.0)


def test_drag_session_does_not_commit_on_error():
    clock = TimelineClock(track_duration=5.0)
    committed = []
    with pytest.raises(RuntimeError):
        with ClipDragSession(clock, Clip(0.0, 1.0), on_commit=committed.append) as session:
            session.apply_pixels(80)
            raise RuntimeError("view torn down")
    assert committed == []
    assert session.closed


def test_drag_session_rejects_unknown_mode():
    with pytest.raises(ValueError):
        ClipDragSession(TimelineClock(), Clip(0.0, 1.0), mode="stretch")
