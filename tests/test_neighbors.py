from neighbors import NeighborLivenessTracker
from simulation import ManualClock


def test_configured_neighbours_are_alive_at_startup():
    """Seeded neighbours count as just contacted."""
    clock = ManualClock(50.0)
    tracker = NeighborLivenessTracker(["a", "b"], clock=clock)

    assert tracker.is_alive("a", clock(), 35.0)
    assert tracker.state("b").last_contact_at == 50.0
    assert tracker.state("b").advertised_routes == {}


def test_touch_replaces_snapshot_wholesale():
    """A new advert replaces the previous snapshot instead of merging into it."""
    tracker = NeighborLivenessTracker(["a"], clock=ManualClock())
    tracker.touch("a", {"x": 1, "y": 2})

    tracker.touch("a", {"z": 4})

    assert tracker.state("a").advertised_routes == {"z": 4}


def test_touch_without_snapshot_keeps_routes_and_refreshes_time():
    clock = ManualClock()
    tracker = NeighborLivenessTracker(["a"], clock=clock)
    tracker.touch("a", {"x": 1})
    clock.advance(10)

    tracker.touch("a")

    state = tracker.state("a")
    assert state.advertised_routes == {"x": 1}
    assert state.last_contact_at == 10


def test_snapshot_is_copied():
    """Later mutation of the caller's mapping does not leak into stored state."""
    tracker = NeighborLivenessTracker(clock=ManualClock())
    routes = {"x": 1}
    tracker.touch("a", routes)
    routes["y"] = 2

    assert tracker.state("a").advertised_routes == {"x": 1}


def test_unknown_sender_state_created_lazily():
    tracker = NeighborLivenessTracker(["a"], clock=ManualClock())
    assert tracker.state("b") is None

    tracker.touch("b")

    assert tracker.state("b") is not None
    assert set(tracker.states()) == {"a", "b"}


def test_liveness_window_and_recovery_without_deletion():
    """Expired neighbours keep their state and come back when heard again."""
    clock = ManualClock()
    tracker = NeighborLivenessTracker(["a"], clock=clock)
    tracker.touch("a", {"x": 2})
    clock.advance(36)

    assert not tracker.is_alive("a", clock(), 35.0)
    assert tracker.state("a").advertised_routes == {"x": 2}

    tracker.touch("a")
    assert tracker.is_alive("a", clock(), 35.0)


def test_vouch_adds_single_zero_metric_entry():
    """An announcement records the vouched address at metric 0 on top of the snapshot."""
    tracker = NeighborLivenessTracker(["a"], clock=ManualClock())
    tracker.touch("a", {"x": 3})

    tracker.vouch("a", "newcomer")

    assert tracker.state("a").advertised_routes == {"x": 3, "newcomer": 0}


def test_never_contacted_address_is_not_alive():
    tracker = NeighborLivenessTracker(clock=ManualClock())

    assert not tracker.is_alive("ghost", 0.0, 35.0)


def test_alive_neighbors_preserves_given_order():
    clock = ManualClock()
    tracker = NeighborLivenessTracker(["c", "a", "b"], clock=clock)
    clock.advance(40)
    tracker.touch("b")
    tracker.touch("c")

    assert tracker.alive_neighbors(["c", "a", "b"], clock(), 35.0) == ["c", "b"]
