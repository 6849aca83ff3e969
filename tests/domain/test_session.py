from __future__ import annotations

from datetime import UTC, datetime, timedelta

from chatlink.domain.session import Session, SessionStatus


def test_transitions_return_new_snapshots() -> None:
    ready_at = datetime(2025, 10, 17, 12, tzinfo=UTC)
    idle = Session()
    connecting = idle.mark_connecting("tok")
    ready = connecting.mark_ready(ready_at, "sid")

    assert idle.status is SessionStatus.IDLE
    assert connecting.token == "tok"
    assert ready.is_ready
    assert ready.session_id == "sid"
    assert ready.ready_timestamp == ready_at.timestamp()
    assert ready.uptime(ready_at + timedelta(seconds=5)) == timedelta(seconds=5)


def test_destroy_clears_identity() -> None:
    ready = Session().mark_connecting("tok").mark_ready(datetime(2025, 1, 1, tzinfo=UTC), "sid")
    destroyed = ready.mark_destroyed()
    assert destroyed.is_destroyed
    assert destroyed.token is None
    assert destroyed.session_id is None


def test_idle_reset_drops_ready_state() -> None:
    ready = Session().mark_connecting("tok").mark_ready(datetime(2025, 1, 1, tzinfo=UTC), "sid")
    idle = ready.mark_idle()
    assert idle.status is SessionStatus.IDLE
    assert idle.ready_at is None
    assert idle.uptime(datetime(2025, 1, 2, tzinfo=UTC)) is None
