"""Entry point: python -m game.client <player_number>"""

import argparse
import asyncio
import curses
import logging

from game.common import config

from .client import GameClient, client_port
from .terminal import CursesTerminal


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="game.client", description="Treasure grid client")
    parser.add_argument(
        "player_number",
        type=int,
        choices=range(1, config.PLAYER_CAP + 1),
        metavar="player_number",
        help=f"1..{config.PLAYER_CAP}; binds UDP port {config.CLIENT_BASE_PORT} + N - 1",
    )
    return parser, parser.parse_args(argv)


def main(argv=None):
    parser, args = parse_args(argv)

    # curses owns the terminal, so logs go to a file
    logging.basicConfig(
        filename=f"client_{args.player_number}.log",
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )

    def _play(stdscr):
        ui = CursesTerminal(stdscr, args.player_number)
        client = GameClient(args.player_number, key_source=ui, renderer=ui)
        asyncio.run(client.run())

    try:
        curses.wrapper(_play)
    except OSError as e:
        parser.exit(1, f"Cannot bind port {client_port(args.player_number)}: {e}\n")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
