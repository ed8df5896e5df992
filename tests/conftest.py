"""Pytest configuration and shared fixtures."""

import pytest

from backgammon_engine.core.types import GameConfig


@pytest.fixture
def start_board():
    """Standard starting position, White to move."""
    from backgammon_engine.core.board import initial_board
    return initial_board()


@pytest.fixture
def blank_board():
    """Board with no checkers at all."""
    from backgammon_engine.core.board import empty_board
    return empty_board()


@pytest.fixture
def controller():
    """Seeded controller that skips the opening roll (White rolls first)."""
    from backgammon_engine.game.controller import GameController
    return GameController(GameConfig(opening_roll=False, seed=7))


@pytest.fixture
def event_sink():
    """List collecting every event pushed to it."""
    class Sink(list):
        def __call__(self, event):
            self.append(event)

        def types(self):
            return [e.type for e in self]

    return Sink()
