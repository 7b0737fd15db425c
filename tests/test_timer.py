import asyncio

from game.runtime.paths import app_data_dir, events_log_path
from game.timer import RoundTimer


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_elapsed_uses_clock():
    clock = FakeClock()
    timer = RoundTimer(clock)

    async def run():
        timer.start(None, lambda: None)
        clock.now += 2.5
        return timer.elapsed()

    assert asyncio.run(run()) == 2.5
    assert not timer.is_armed()


def test_timer_fires_once():
    fired = []

    async def run():
        timer = RoundTimer()
        timer.start(0.01, lambda: fired.append(1))
        assert timer.is_armed()
        await asyncio.sleep(0.03)
        assert not timer.is_armed()

    asyncio.run(run())
    assert fired == [1]


def test_cancelled_timer_does_not_fire():
    fired = []

    async def run():
        timer = RoundTimer()
        timer.start(0.01, lambda: fired.append(1))
        timer.cancel()
        await asyncio.sleep(0.03)

    asyncio.run(run())
    assert fired == []


def test_restart_replaces_previous_deadline():
    fired = []

    async def run():
        timer = RoundTimer()
        timer.start(0.01, lambda: fired.append("first"))
        timer.start(0.02, lambda: fired.append("second"))
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert fired == ["second"]


def test_data_dir_override(tmp_path, monkeypatch):
    monkeypatch.setenv("ARCADE_DATA_DIR", str(tmp_path / "arcade"))
    assert app_data_dir() == tmp_path / "arcade"
    assert events_log_path() == tmp_path / "arcade" / "events.jsonl"
