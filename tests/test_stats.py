"""Crediting wins, losses and draws to participants."""

import pytest

from duoxo.server.models import GameRecord, Stats, UserRecord
from duoxo.server.stats import apply_outcome, outcome_for
from duoxo.server.storage import MemoryStorage


def setup_players(store, alice_stats=None):
    alice = UserRecord(
        username="alice", email="alice@example.com", passwordHash="x",
        stats=alice_stats or Stats(),
    )
    bob = UserRecord(username="bob", email="bob@example.com", passwordHash="x")
    store.create_user(alice)
    store.create_user(bob)
    return alice, bob


def finished(player1, player2, winner, game_type="multiplayer"):
    return GameRecord(
        player1=player1, player2=player2, gameType=game_type,
        winner=winner, isComplete=True,
    )


def test_winner_gets_win_and_loser_gets_loss():
    store = MemoryStorage()
    alice, bob = setup_players(store, Stats(gamesPlayed=5, gamesWon=3))
    apply_outcome(finished(alice.id, bob.id, "X"), store)

    a = store.get_user(alice.id).stats
    assert a == Stats(gamesPlayed=6, gamesWon=4, gamesLost=0, gamesDrawn=0)
    b = store.get_user(bob.id).stats
    assert b == Stats(gamesPlayed=1, gamesWon=0, gamesLost=1, gamesDrawn=0)


def test_draw_credits_everyone():
    store = MemoryStorage()
    alice, bob = setup_players(store)
    apply_outcome(finished(alice.id, bob.id, "draw"), store)
    for user in (alice, bob):
        assert store.get_user(user.id).stats == Stats(gamesPlayed=1, gamesDrawn=1)


def test_o_win_in_solo_game_is_a_loss_for_owner():
    store = MemoryStorage()
    alice, _ = setup_players(store)
    apply_outcome(finished(alice.id, None, "O", game_type="single"), store)
    assert store.get_user(alice.id).stats == Stats(gamesPlayed=1, gamesLost=1)


def test_outcome_for_rejects_unfinished_or_outsiders():
    game = finished("a", "b", "O")
    assert outcome_for(game, "b") == "win"
    assert outcome_for(game, "a") == "loss"
    with pytest.raises(ValueError):
        outcome_for(game, "c")
    with pytest.raises(ValueError):
        outcome_for(GameRecord(player1="a"), "a")


def test_failed_write_propagates_and_keeps_earlier_credit():
    class FlakyStorage(MemoryStorage):
        def increment_stats(self, user_id, result):
            if result == "loss":
                raise RuntimeError("disk full")
            super().increment_stats(user_id, result)

    store = FlakyStorage()
    alice, bob = setup_players(store)
    with pytest.raises(RuntimeError):
        apply_outcome(finished(alice.id, bob.id, "X"), store)
    assert store.get_user(alice.id).stats.gamesWon == 1
    assert store.get_user(bob.id).stats.gamesPlayed == 0
