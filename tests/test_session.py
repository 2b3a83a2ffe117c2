"""Tests for the local play loop and its delayed AI replies."""

import random
import time

import pytest

from duoxo.local.session import HISTORY_LIMIT, LocalSession, ThreadingScheduler


class ManualScheduler:
    """Queues callbacks until the test fires them."""

    class Handle:
        def __init__(self, fn):
            self.fn = fn
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.calls = []

    def call_later(self, delay, fn):
        handle = self.Handle(fn)
        self.calls.append((delay, handle))
        return handle

    def fire_all(self):
        """Run every queued callback, even cancelled ones, like a late timer."""

        calls, self.calls = self.calls, []
        for _, handle in calls:
            handle.fn()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def win_for_x(session):
    for row, col in ((0, 0), (1, 0), (0, 1), (1, 1), (0, 2)):
        assert session.click(row, col)


def test_pvp_alternates_and_scores():
    session = LocalSession(mode="pvp", scheduler=ManualScheduler())
    win_for_x(session)
    assert session.game.winner == "X"
    assert session.scores == {"X": 1, "O": 0, "draws": 0}
    assert session.history[0].winner == "X"
    assert session.history[0].moves == 5
    assert session.status() == "X wins!"


def test_clicks_ignored_on_taken_cell_and_after_game_over():
    session = LocalSession(scheduler=ManualScheduler())
    assert session.click(0, 0)
    assert not session.click(0, 0)
    assert not session.click(5, 5)
    session.reset()
    win_for_x(session)
    assert not session.click(2, 2)
    assert session.game.board[2][2] == ""


def test_ai_reply_is_delayed_until_fired():
    scheduler = ManualScheduler()
    session = LocalSession(mode="ai", difficulty="hard", scheduler=scheduler)
    assert session.click(0, 0)
    assert session.ai_pending
    assert session.status() == "AI is thinking..."
    assert len(scheduler.calls) == 1
    assert scheduler.calls[0][0] == session.ai_delay

    # Human cannot move for the AI.
    assert not session.click(2, 2)

    scheduler.fire_all()
    assert not session.ai_pending
    assert session.game.board[1][1] == "O"
    assert session.game.current_player == "X"


def test_reset_invalidates_pending_ai_move():
    scheduler = ManualScheduler()
    session = LocalSession(mode="ai", difficulty="hard", scheduler=scheduler)
    session.click(0, 0)
    handle = scheduler.calls[0][1]

    session.reset()
    assert handle.cancelled
    assert not session.ai_pending

    scheduler.fire_all()
    assert all(cell == "" for row in session.game.board for cell in row)
    assert session.game.current_player == "X"


def test_ai_not_scheduled_after_winning_move():
    scheduler = ManualScheduler()
    session = LocalSession(mode="ai", difficulty="easy", scheduler=scheduler)
    board = session.game.board
    board[0][0], board[0][1] = "X", "X"
    board[1][0], board[1][1] = "O", "O"
    assert session.click(0, 2)
    assert session.game.winner == "X"
    assert scheduler.calls == []
    assert not session.ai_pending


def test_ai_win_updates_scores():
    scheduler = ManualScheduler()
    session = LocalSession(mode="ai", difficulty="hard", scheduler=scheduler)
    session.click(0, 0)
    scheduler.fire_all()  # O takes the centre
    session.click(2, 2)
    scheduler.fire_all()  # O takes a corner
    # Put X somewhere harmless, then let the AI finish any line it has.
    for _ in range(4):
        if session.game.is_over:
            break
        row, col = session.game.available_moves()[0]
        session.click(row, col)
        scheduler.fire_all()
    assert session.game.is_over
    total = session.scores["X"] + session.scores["O"] + session.scores["draws"]
    assert total == 1


def test_duration_ticks_and_freezes():
    clock = FakeClock()
    session = LocalSession(scheduler=ManualScheduler(), clock=clock)
    clock.now += 7.9
    assert session.duration() == 7
    session.click(0, 0)
    session.click(1, 0)
    session.click(0, 1)
    session.click(1, 1)
    clock.now += 3
    session.click(0, 2)
    clock.now += 100
    assert session.duration() == 10
    assert session.history[0].duration == 10


def test_history_keeps_latest_games_newest_first():
    clock = FakeClock()
    session = LocalSession(scheduler=ManualScheduler(), clock=clock)
    for i in range(HISTORY_LIMIT + 2):
        clock.now = 1000.0 + i
        session.reset()
        win_for_x(session)
    assert len(session.history) == HISTORY_LIMIT
    assert session.history[0].finished_at > session.history[-1].finished_at
    assert session.scores["X"] == HISTORY_LIMIT + 2

    session.reset_scores()
    assert session.scores == {"X": 0, "O": 0, "draws": 0}
    assert session.history == []


def test_changing_size_or_mode_resets_board():
    session = LocalSession(scheduler=ManualScheduler())
    session.click(0, 0)
    session.set_board_size(5)
    assert session.game.size == 5
    assert session.game.moves == []
    session.click(4, 4)
    session.set_mode("ai")
    assert session.game.moves == []
    with pytest.raises(ValueError):
        session.set_board_size(7)
    with pytest.raises(ValueError):
        session.set_mode("online")


def test_threading_scheduler_plays_ai_move():
    session = LocalSession(
        mode="ai",
        difficulty="hard",
        scheduler=ThreadingScheduler(),
        rng=random.Random(0),
        ai_delay=0.0,
    )
    session.click(0, 0)
    deadline = time.time() + 2.0
    while session.ai_pending and time.time() < deadline:
        time.sleep(0.01)
    assert session.game.board[1][1] == "O"
