import random

import pytest

from memory_matchers.services.games import (
    GameSession,
    InMemoryScoreStore,
    ModeSelect,
    SessionController,
    SessionRegistry,
)


@pytest.fixture()
def registry(clock, scheduler):
    def _controller(code):
        def _session():
            return GameSession(rng=random.Random(3), clock=clock, scheduler=scheduler)
        return SessionController(InMemoryScoreStore(), session_factory=_session)
    return SessionRegistry(_controller, idle_timeout=60, clock=clock)


def test_codes_are_unique_and_case_insensitive(registry):
    codes = {registry.create()[0] for _ in range(20)}
    assert len(codes) == 20 == len(registry)
    code = next(iter(codes))
    assert registry.get(code.lower()) is registry.get(code)
    assert code.lower() in registry


def test_remove_returns_controller_to_menu(registry, scheduler):
    code, controller = registry.create()
    session = controller.choose_mode(2, 2)
    session.tap(0)
    session.tap(1)

    assert registry.remove(code) is controller
    assert isinstance(controller.state, ModeSelect)
    assert scheduler.run_pending() == 0
    assert registry.remove(code) is None


def test_sweep_drops_only_idle_games(registry, clock):
    idle_code, idle = registry.create()
    busy_code, _ = registry.create()
    idle.choose_mode(2, 2)

    clock.advance(45)
    registry.get(busy_code)
    clock.advance(30)

    assert registry.sweep_idle() == [idle_code]
    assert registry.get(idle_code) is None
    assert isinstance(idle.state, ModeSelect)
    assert registry.get(busy_code) is not None
    assert len(registry) == 1


def test_sweep_is_disabled_without_timeout(clock):
    registry = SessionRegistry(lambda code: SessionController(InMemoryScoreStore()), clock=clock)
    registry.create()
    clock.advance(10 ** 6)
    assert registry.sweep_idle() == []
    assert len(registry) == 1
