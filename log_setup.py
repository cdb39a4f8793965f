"""Logging for the migrator.

All module loggers are children of one application logger ("deezer2spotify"),
which owns three handlers:

  - console:    bare messages, INFO (DEBUG with --verbose)
  - latest.log: everything from the current run, emptied by reset_latest()
  - migrate.log: everything, appended, rotated at midnight into
                 migrate.<date>.log

Records still propagate to the root logger, so pytest's caplog sees them.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler

APP_LOGGER = "deezer2spotify"

DIR = os.path.dirname(os.path.abspath(__file__))
LATEST_NAME = "latest.log"
ARCHIVE_NAME = "migrate.log"

_FILE_FMT = logging.Formatter(
    "%(asctime)s [%(name)s] %(levelname)-5s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
_CONSOLE_FMT = logging.Formatter("%(message)s")

_state = {"log_dir": None}


def default_log_dir():
    """$LOG_DIR, or logs/ next to this file."""
    return os.environ.get("LOG_DIR") or os.path.join(DIR, "logs")


def _archive_name(name):
    # migrate.log.2026-01-02 -> migrate.2026-01-02.log
    root, _, date = name.rpartition(".log.")
    return f"{root}.{date}.log" if root else name


def configure(log_dir=None, verbose=False):
    """Attach fresh console and file handlers to the application logger.

    Safe to call again: the previous handlers are closed and replaced.
    """
    log_dir = log_dir or default_log_dir()
    os.makedirs(log_dir, exist_ok=True)

    app = logging.getLogger(APP_LOGGER)
    app.setLevel(logging.DEBUG)
    for handler in list(app.handlers):
        app.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(_CONSOLE_FMT)

    session = logging.FileHandler(os.path.join(log_dir, LATEST_NAME), encoding="utf-8")
    archive = TimedRotatingFileHandler(
        os.path.join(log_dir, ARCHIVE_NAME), when="midnight", backupCount=0, encoding="utf-8",
    )
    archive.namer = _archive_name
    for handler in (session, archive):
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(_FILE_FMT)

    for handler in (console, session, archive):
        app.addHandler(handler)

    _state["log_dir"] = log_dir
    return app


def get_logger(name):
    """Logger for one module, e.g. get_logger("callback")."""
    if _state["log_dir"] is None:
        configure()
    return logging.getLogger(f"{APP_LOGGER}.{name}")


def latest_log_path():
    return os.path.join(_state["log_dir"] or default_log_dir(), LATEST_NAME)


def reset_latest():
    """Empty latest.log at the start of a run."""
    path = latest_log_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    open(path, "w").close()
