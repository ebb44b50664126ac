from src.services.cooldown import CooldownManager


class StubStore:
    def __init__(self, recent=False, error=None):
        self.recent = recent
        self.error = error
        self.calls = []

    def exists_recent_alert(self, symbol, window_minutes):
        self.calls.append((symbol, window_minutes))
        if self.error:
            raise self.error
        return self.recent


def test_mark_then_expire(clock):
    manager = CooldownManager(StubStore(), cooldown_minutes=30, clock=clock)
    assert manager.is_in_cooldown("ABCD") is False

    manager.mark_cooldown("ABCD")
    clock.advance(30 * 60 - 1)
    assert manager.is_in_cooldown("ABCD") is True

    clock.advance(1)
    assert manager.is_in_cooldown("ABCD") is False
    assert manager.active_count() == 0


def test_mark_refreshes_expiry(clock):
    manager = CooldownManager(StubStore(), cooldown_minutes=10, clock=clock)
    manager.mark_cooldown("ABCD")
    clock.advance(9 * 60)
    manager.mark_cooldown("ABCD")
    clock.advance(5 * 60)

    assert manager.is_in_cooldown("ABCD") is True


def test_recent_alert_in_store_sets_memory_cooldown(clock):
    store = StubStore(recent=True)
    manager = CooldownManager(store, cooldown_minutes=30, clock=clock)

    assert manager.was_recently_alerted("ABCD") is True
    assert store.calls == [("ABCD", 30)]
    assert manager.is_in_cooldown("ABCD") is True


def test_no_recent_alert(clock):
    manager = CooldownManager(StubStore(recent=False), cooldown_minutes=30, clock=clock)

    assert manager.was_recently_alerted("ABCD") is False
    assert manager.is_in_cooldown("ABCD") is False


def test_store_failure_fails_open(clock):
    manager = CooldownManager(StubStore(error=ConnectionError("db down")), cooldown_minutes=30, clock=clock)

    assert manager.was_recently_alerted("ABCD") is False
    assert manager.is_in_cooldown("ABCD") is False
