"""Entry point for running DuoXO via ``python -m duoxo``."""

from __future__ import annotations

import argparse
import time
from typing import List, Optional

import uvicorn

from .config import Settings
from .local import LocalSession
from .local.ai import Difficulty
from .local.game import BOARD_SIZES
from .log import configure_logging


def serve(settings: Settings) -> None:
    """Start the FastAPI-powered DuoXO server."""

    configure_logging(settings.log_level)
    uvicorn.run(
        "duoxo.server.api:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
    )


def _render(session: LocalSession) -> str:
    game = session.game
    rows = []
    for r, row in enumerate(game.board):
        rows.append(" | ".join(cell or str(r * game.size + c + 1) for c, cell in enumerate(row)))
    rule = "\n" + "-" * (4 * game.size - 3) + "\n"
    return rule.join(rows)


def play(size: int, mode: str, difficulty: str) -> None:
    """Play a local game in the terminal; cells are numbered from 1."""

    session = LocalSession(size=size, mode=mode, difficulty=difficulty)
    while True:
        while session.ai_pending:
            time.sleep(0.05)
        print(_render(session))
        print(session.status())
        if session.game.is_over:
            print(f"Score X {session.scores['X']}  O {session.scores['O']}  draws {session.scores['draws']}")
            again = input("Play again? [y/N] ").strip().lower()
            if again != "y":
                return
            session.reset()
            continue
        raw = input("Cell: ").strip()
        if raw in ("q", "quit"):
            return
        try:
            index = int(raw) - 1
        except ValueError:
            print("Enter a cell number or q")
            continue
        if not session.click(index // size, index % size):
            print("That move is not allowed")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="duoxo", description="DuoXO tic-tac-toe")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="run the web API (default)")
    local = sub.add_parser("play", help="play a local game in the terminal")
    local.add_argument("--size", type=int, choices=BOARD_SIZES, default=3)
    local.add_argument("--mode", choices=("pvp", "ai"), default="ai")
    local.add_argument(
        "--difficulty", choices=[d.value for d in Difficulty], default="medium"
    )
    args = parser.parse_args(argv)

    if args.command == "play":
        play(args.size, args.mode, args.difficulty)
    else:
        serve(Settings.from_env())


if __name__ == "__main__":
    main()
