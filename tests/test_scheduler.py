import asyncio
from typing import List

from routing import RecomputeResult, RouteChange, ChangeKind, RouteEntry, RoutingTable
from scheduler import AdvertisementScheduler


class RecordingNode:
    """Advertiser stand-in that logs every call the scheduler makes."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def announce(self) -> None:
        self.calls.append("announce")

    def broadcast_table(self, reason: str) -> None:
        self.calls.append(f"broadcast:{reason}")

    def check_liveness(self) -> None:
        self.calls.append("liveness")

    def log_table(self) -> None:
        self.calls.append("log")


def test_start_announces_once_then_runs_periodic_loops():
    """Announcement comes first; adverts and liveness checks repeat until stopped."""
    node = RecordingNode()

    async def scenario() -> AdvertisementScheduler:
        scheduler = AdvertisementScheduler(node, advert_interval=0.01, liveness_check_interval=0.015)
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert node.calls[0] == "announce"
    assert node.calls.count("announce") == 1
    assert node.calls.count("broadcast:periodic") >= 2
    assert node.calls.count("liveness") >= 2
    assert "log" not in node.calls
    assert not scheduler.running


def test_stop_cancels_all_timers():
    node = RecordingNode()

    async def scenario() -> int:
        scheduler = AdvertisementScheduler(node, 0.01, 0.01, table_log_interval=0.01)
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        count = len(node.calls)
        await asyncio.sleep(0.05)
        return count

    count_at_stop = asyncio.run(scenario())

    assert len(node.calls) == count_at_stop
    assert "log" in node.calls


def test_start_twice_does_not_double_announce():
    node = RecordingNode()

    async def scenario() -> None:
        scheduler = AdvertisementScheduler(node, 10.0, 10.0)
        scheduler.start()
        scheduler.start()
        await scheduler.stop()

    asyncio.run(scenario())

    assert node.calls == ["announce"]


def test_triggered_broadcast_only_on_change():
    node = RecordingNode()
    scheduler = AdvertisementScheduler(node, 10.0, 10.0)
    entry = RouteEntry("x", 1, "x")
    changed = RecomputeResult(
        RoutingTable({"x": entry}), (RouteChange(ChangeKind.ADDED, "x", None, entry),)
    )
    unchanged = RecomputeResult(RoutingTable({"x": entry}), ())

    assert scheduler.triggered(unchanged) is False
    assert scheduler.triggered(None) is False
    assert scheduler.triggered(changed) is True
    assert node.calls == ["broadcast:triggered"]


class FlakyNode(RecordingNode):
    """Liveness checks raise on the first call only."""

    def check_liveness(self) -> None:
        super().check_liveness()
        if self.calls.count("liveness") == 1:
            raise RuntimeError("boom")


def test_failing_action_does_not_stop_its_loop(caplog):
    """An exception in one tick is logged and the timer keeps running."""
    node = FlakyNode()

    async def scenario() -> None:
        scheduler = AdvertisementScheduler(node, advert_interval=10.0, liveness_check_interval=0.01)
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

    asyncio.run(scenario())

    assert node.calls.count("liveness") >= 2
    assert "periodic check_liveness failed" in caplog.text
