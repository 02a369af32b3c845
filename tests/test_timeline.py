"""
TimelineController Tests
========================

Play/pause state machine, year clamping, the end-of-range boundary and the
single-slot timers.
"""

import asyncio

import pytest

from cohort_timeline.data_view import DataView
from cohort_timeline.timeline import (
    AsyncioTimer,
    PolledTimer,
    TimelineController,
    TimelineError,
    TimerError,
)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def rendered():
    return []


@pytest.fixture
def controller(rendered):
    return TimelineController((2000, 2002), rendered.append, timer=PolledTimer())


class TestSetYear:

    def test_initial_state(self, controller, rendered):
        assert controller.current_year == 2000
        assert controller.is_playing is False
        assert controller.button_label == "Play"
        assert rendered == []

    @pytest.mark.parametrize(
        "requested, expected",
        [
            (2001, 2001),
            (1850, 2000),
            (99999, 2002),
            (-5, 2000),
            (2001.9, 2001),
            ("2002", 2002),
            ("2001.0", 2001),
            (float("inf"), 2002),
            (float("-inf"), 2000),
        ],
    )
    def test_clamps_into_range(self, controller, rendered, requested, expected):
        assert controller.set_year(requested) == expected
        assert controller.min_year <= controller.current_year <= controller.max_year
        assert rendered == [expected]

    @pytest.mark.parametrize("junk", [None, "abc", float("nan"), object()])
    def test_unparsable_input_keeps_current_year(self, controller, rendered, junk):
        controller.set_year(2001)
        controller.set_year(junk)
        assert controller.current_year == 2001
        assert rendered == [2001, 2001]

    def test_does_not_change_play_state(self, controller):
        controller.set_year(2002)
        assert controller.is_playing is False
        assert controller.timer.active is False


class TestTogglePlay:

    def test_start_and_pause(self, controller):
        assert controller.toggle_play() is True
        assert controller.timer.active
        assert controller.button_label == "Pause"

        assert controller.toggle_play() is False
        assert not controller.timer.active
        assert controller.button_label == "Play"

    def test_double_toggle_leaves_no_timer(self, controller, rendered):
        controller.toggle_play()
        controller.toggle_play()

        assert controller.is_playing is False
        assert controller.timer.active is False
        assert controller.timer.fire() is False
        assert rendered == []

    def test_refuses_to_start_over_an_active_timer(self, rendered):
        timer = PolledTimer()
        timer.start(1.0, lambda: None)
        controller = TimelineController((2000, 2002), rendered.append, timer=timer)

        with pytest.raises(TimelineError):
            controller.toggle_play()
        assert controller.is_playing is False

    def test_close_cancels_timer(self, controller):
        controller.toggle_play()
        controller.close()
        assert controller.is_playing is False
        assert controller.timer.active is False


class TestPlayback:

    def test_plays_every_year_then_auto_stops(self, controller, rendered):
        controller.toggle_play()
        for _ in range(3):
            controller.timer.fire()

        assert rendered == [2000, 2001, 2002]
        assert controller.is_playing is True
        assert controller.current_year == 2003

        # One more tick finds the range exhausted
        controller.timer.fire()
        assert controller.is_playing is False
        assert controller.timer.active is False
        assert controller.current_year == 2003
        assert controller.current_year > controller.max_year
        assert rendered == [2000, 2001, 2002]

    def test_slider_value_stays_in_range_after_auto_stop(self, controller):
        controller.toggle_play()
        for _ in range(4):
            controller.timer.fire()
        assert controller.slider_value == 2002

    def test_slider_shows_the_year_just_drawn(self, controller, rendered):
        controller.set_year(2000)
        controller.toggle_play()
        assert controller.slider_value == 2000

        for _ in range(3):
            controller.timer.fire()
            assert controller.slider_value == rendered[-1]
        assert controller.current_year == 2003
        assert controller.slider_value == 2002

    def test_pause_then_play_replays_last_drawn_year(self, controller, rendered):
        controller.toggle_play()
        controller.timer.fire()
        controller.timer.fire()
        controller.toggle_play()
        assert rendered == [2000, 2001]
        assert controller.current_year == 2002

        controller.toggle_play()
        assert controller.current_year == 2001
        controller.timer.fire()
        assert rendered == [2000, 2001, 2001]

    def test_play_after_auto_stop_replays_last_year(self, controller, rendered):
        controller.toggle_play()
        for _ in range(4):
            controller.timer.fire()
        rendered.clear()

        controller.toggle_play()
        assert controller.current_year == 2002
        controller.timer.fire()
        controller.timer.fire()
        assert rendered == [2002]
        assert controller.is_playing is False

    def test_scrubbing_while_playing_moves_the_playhead(self, controller, rendered):
        controller.toggle_play()
        controller.timer.fire()
        controller.set_year(2002)
        controller.timer.fire()

        assert rendered == [2000, 2002, 2002]
        assert controller.current_year == 2003

    def test_single_year_range(self, rendered):
        controller = TimelineController((2000, 2000), rendered.append)
        controller.toggle_play()
        controller.timer.fire()
        controller.timer.fire()

        assert rendered == [2000]
        assert controller.is_playing is False


class TestSubscribers:

    def test_listeners_see_every_change(self, controller):
        states = []
        unsubscribe = controller.subscribe(states.append)

        controller.set_year(2001)
        controller.toggle_play()
        controller.timer.fire()
        controller.toggle_play()

        assert [(s.current_year, s.is_playing) for s in states] == [
            (2001, False),
            (2001, True),
            (2002, True),
            (2002, False),
        ]

        unsubscribe()
        controller.set_year(2000)
        assert len(states) == 4


class TestForView:

    def test_uses_view_range(self, three_year_view):
        controller = TimelineController.for_view(three_year_view, lambda year: None)
        assert (controller.min_year, controller.max_year) == (2000, 2002)
        assert controller.current_year == 2000

    def test_empty_view_is_rejected(self):
        with pytest.raises(ValueError):
            TimelineController.for_view(DataView(), lambda year: None)

    def test_inverted_range_is_rejected(self):
        with pytest.raises(ValueError):
            TimelineController((2002, 2000), lambda year: None)


class TestPolledTimer:

    def test_fires_only_after_a_full_period(self):
        clock = FakeClock()
        ticks = []
        timer = PolledTimer(clock=clock)
        timer.start(0.5, lambda: ticks.append(clock.now))

        assert timer.poll() is False
        clock.now += 0.25
        assert timer.poll() is False
        clock.now += 0.25
        assert timer.poll() is True
        assert timer.poll() is False
        clock.now += 10
        assert timer.poll() is True
        assert len(ticks) == 2

    def test_slack_accepts_early_polls(self):
        clock = FakeClock()
        ticks = []
        timer = PolledTimer(clock=clock, slack=0.2)
        timer.start(0.5, lambda: ticks.append(1))

        clock.now += 0.45
        assert timer.poll() is True
        assert ticks == [1]

    def test_double_start_raises(self):
        timer = PolledTimer()
        timer.start(0.5, lambda: None)
        with pytest.raises(TimerError):
            timer.start(0.5, lambda: None)

    def test_cancel_is_idempotent(self):
        timer = PolledTimer()
        timer.cancel()
        timer.start(0.5, lambda: None)
        timer.cancel()
        timer.cancel()
        assert timer.active is False
        assert timer.poll() is False


class TestAsyncioTimer:

    def test_drives_controller_to_auto_stop(self):
        rendered = []

        async def run():
            stopped = asyncio.Event()
            controller = TimelineController(
                (2000, 2002), rendered.append, timer=AsyncioTimer(), period=0.001
            )
            controller.subscribe(lambda state: None if state.is_playing else stopped.set())
            controller.toggle_play()
            await asyncio.wait_for(stopped.wait(), timeout=5)
            return controller

        controller = asyncio.run(run())

        assert rendered == [2000, 2001, 2002]
        assert controller.is_playing is False
        assert controller.timer.active is False

    def test_double_start_raises(self):
        async def run():
            timer = AsyncioTimer()
            timer.start(10, lambda: None)
            try:
                with pytest.raises(TimerError):
                    timer.start(10, lambda: None)
            finally:
                timer.cancel()
            return timer.active

        assert asyncio.run(run()) is False
