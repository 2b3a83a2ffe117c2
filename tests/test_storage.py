"""Both storage backends behind the same contract."""

from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from duoxo.config import Settings
from duoxo.errors import ConflictError
from duoxo.server import storage as storage_module
from duoxo.server.models import GameRecord, UserRecord
from duoxo.server.rules import make_move
from duoxo.server.storage import MemoryStorage, MongoStorage, create_storage


def _mongo():
    mongomock = pytest.importorskip("mongomock")
    return MongoStorage(mongomock.MongoClient()["duoxo_test"])


@pytest.fixture(params=["memory", "mongo"])
def store(request):
    if request.param == "memory":
        return MemoryStorage()
    return _mongo()


def user(name):
    return UserRecord(username=name, email=f"{name}@example.com", passwordHash="x")


def test_user_crud(store):
    alice = store.create_user(user("alice"))
    assert store.get_user(alice.id).username == "alice"
    assert store.find_user_by_email("alice@example.com").id == alice.id
    assert store.find_user_by_username("alice").id == alice.id
    assert store.get_user("missing") is None

    updated = store.update_user(alice.id, {"username": "alice2"})
    assert updated.username == "alice2"


def test_duplicate_users_conflict(store):
    store.create_user(user("alice"))
    with pytest.raises(ConflictError):
        store.create_user(user("alice"))
    bob = store.create_user(user("bob"))
    with pytest.raises(ConflictError):
        store.update_user(bob.id, {"email": "alice@example.com"})


def test_increment_stats(store):
    alice = store.create_user(user("alice"))
    store.increment_stats(alice.id, "win")
    store.increment_stats(alice.id, "draw")
    stats = store.get_user(alice.id).stats
    assert (stats.gamesPlayed, stats.gamesWon, stats.gamesLost, stats.gamesDrawn) == (2, 1, 0, 1)
    with pytest.raises(ValueError):
        store.increment_stats(alice.id, "forfeit")


def test_save_move_is_compare_and_set(store):
    game = store.create_game(GameRecord(player1="a", player2="b", gameType="multiplayer"))

    first = store.get_game(game.id)
    second = store.get_game(game.id)
    make_move(first, 0, 0, "X")
    make_move(second, 1, 1, "X")

    assert store.save_move(first, 0) is True
    assert store.save_move(second, 0) is False

    stored = store.get_game(game.id)
    assert stored.board[0][0] == "X"
    assert stored.board[1][1] == ""
    assert len(stored.moves) == 1


def test_join_only_once(store):
    game = store.create_game(GameRecord(player1="a", gameType="multiplayer"))
    assert store.join_game(game.id, "b") is True
    assert store.join_game(game.id, "c") is False
    assert store.get_game(game.id).player2 == "b"


def test_list_games_newest_first_and_capped(store):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(23):
        player2 = "a" if i % 2 else None
        store.create_game(
            GameRecord(player1="z" if i % 2 else "a", player2=player2, createdAt=base + timedelta(minutes=i))
        )
    store.create_game(GameRecord(player1="someone-else"))

    games = store.list_games_for("a")
    assert len(games) == 20
    stamps = [g.createdAt.replace(tzinfo=None) for g in games]
    assert stamps == sorted(stamps, reverse=True)
    assert all("a" in g.participants() for g in games)


def test_list_games_breaks_timestamp_ties_by_creation_order(store):
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    tied = [
        store.create_game(GameRecord(player1="a", createdAt=created_at)).id
        for _ in range(10)
    ]
    assert [g.id for g in store.list_games_for("a", 10)] == tied[::-1]


def test_list_games_back_to_back_is_newest_first(store):
    created = [store.create_game(GameRecord(player1="a")).id for _ in range(30)]
    assert [g.id for g in store.list_games_for("a", 30)] == created[::-1]


def test_delete_game(store):
    game = store.create_game(GameRecord(player1="a"))
    assert store.delete_game(game.id) is True
    assert store.get_game(game.id) is None
    assert store.delete_game(game.id) is False


def test_memory_reads_are_copies():
    store = MemoryStorage()
    game = store.create_game(GameRecord(player1="a"))
    loaded = store.get_game(game.id)
    loaded.board[0][0] = "X"
    assert store.get_game(game.id).board[0][0] == ""


def test_describe_names_backend():
    assert MemoryStorage().describe() == "In-Memory"


def test_auto_storage_falls_back_to_memory(monkeypatch):
    def refuse(*args, **kwargs):
        raise ServerSelectionTimeoutError("no server")

    monkeypatch.setattr(storage_module.MongoStorage, "connect", classmethod(lambda cls, *a, **k: refuse()))
    assert isinstance(create_storage(Settings(storage="auto")), MemoryStorage)
    with pytest.raises(ServerSelectionTimeoutError):
        create_storage(Settings(storage="mongo"))
    assert isinstance(create_storage(Settings(storage="memory")), MemoryStorage)
