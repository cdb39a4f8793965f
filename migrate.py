#!/usr/bin/env python3
"""
Deezer → Spotify playlist migration.

Usage:
  python3 migrate.py                                   # Migrate every playlist
  python3 migrate.py --filter-playlist "Rock" "Jazz"   # Specific playlists
  python3 migrate.py --dry-run                         # Match only, create nothing
  python3 migrate.py --open-browser                    # Open the sign-in pages automatically
  python3 migrate.py --dedupe                          # Add each Spotify track once per playlist
  python3 migrate.py -v                                # Debug output on the console
  python3 migrate.py --poll-interval 10 --poll-attempts 12   # 2 minute login window

Credentials are read from the environment or a .env file (see .env.example).
"""

import argparse
import sys

import requests

from callback_server import CallbackServer, CompletionTracker, new_slots
from config import load_settings
from deezer import DeezerSession
from errors import MigrationError, format_duration
from log_setup import configure as configure_logging, get_logger, reset_latest
from login import login
from playlist_sync import migrate_all
from spotify_client import SpotifySession

log = get_logger("migrate")


def positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a whole number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def build_parser():
    class HelpOnErrorParser(argparse.ArgumentParser):
        def error(self, message):
            self.print_help(sys.stderr)
            sys.stderr.write(f"\nerror: {message}\n")
            sys.exit(2)

    parser = HelpOnErrorParser(description="Deezer → Spotify playlist migration")
    parser.add_argument("--filter-playlist", nargs="+", metavar="NAME", help="Only migrate playlists with these exact names")
    parser.add_argument("--dry-run", action="store_true", help="Log in and match tracks, but create nothing on Spotify")
    parser.add_argument("--open-browser", action="store_true", help="Open the sign-in pages in the default browser")
    parser.add_argument("--dedupe", action="store_true", help="Add a Spotify track only once per playlist, even if several Deezer tracks match it")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug messages on the console too")
    parser.add_argument("--poll-interval", type=positive_float, metavar="SECONDS", help="Seconds between checks for a login callback")
    parser.add_argument("--poll-attempts", type=positive_int, metavar="N", help="Checks before a login times out")
    return parser


def run(settings, args):
    """Log in to both providers through one callback listener, then migrate."""
    interval = args.poll_interval if args.poll_interval is not None else settings.poll_interval
    attempts = args.poll_attempts if args.poll_attempts is not None else settings.poll_attempts
    log.debug(f"Login window per provider: {format_duration(interval * attempts)}")

    http = requests.Session()
    deezer = DeezerSession(
        settings.deezer_app_id, settings.deezer_secret, settings.redirect_uri("Deezer"), http=http,
    )
    spotify = SpotifySession(
        settings.spotify_client_id, settings.spotify_client_secret, settings.redirect_uri("Spotify"), http=http,
    )

    slots = new_slots()
    tracker = CompletionTracker()
    with CallbackServer(slots, tracker, host=settings.callback_host, port=settings.callback_port):
        login(deezer, slots["Deezer"], interval, attempts, open_browser=args.open_browser)
        login(spotify, slots["Spotify"], interval, attempts, open_browser=args.open_browser)

    return migrate_all(deezer, spotify, filter_names=args.filter_playlist, dry_run=args.dry_run, dedupe=args.dedupe)


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    reset_latest()

    try:
        settings = load_settings()
        run(settings, args)
    except MigrationError as e:
        log.error(f"Failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        log.error("Interrupted")
        sys.exit(130)

    log.info("\nDone!")


if __name__ == "__main__":
    main()
