"""Runtime settings loaded from the environment.

Credentials come from the process environment, optionally seeded from a .env
file in the working directory (see .env.example). Create the apps at:
  - https://developers.deezer.com/myapps  (Redirect URL: http://127.0.0.1:8080/Deezer)
  - https://developer.spotify.com/dashboard  (Redirect URI: http://127.0.0.1:8080/Spotify)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from errors import ConfigError

REQUIRED = ("DEEZER_APP_ID", "DEEZER_SECRET", "SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET")

DEFAULT_CALLBACK_HOST = "127.0.0.1"
DEFAULT_CALLBACK_PORT = 8080
DEFAULT_REDIRECT_HOST = "127.0.0.1"

# 2s x 150 = 5 minutes to finish each login in the browser
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_POLL_ATTEMPTS = 150


@dataclass(frozen=True)
class Settings:
    deezer_app_id: str
    deezer_secret: str
    spotify_client_id: str
    spotify_client_secret: str
    callback_host: str = DEFAULT_CALLBACK_HOST
    callback_port: int = DEFAULT_CALLBACK_PORT
    redirect_host: str = DEFAULT_REDIRECT_HOST
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS

    def redirect_uri(self, provider):
        """Redirect URI registered with `provider`; its path routes the callback."""
        return f"http://{self.redirect_host}:{self.callback_port}/{provider}"


def _number(env, name, cast, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env=None):
    """Build Settings from `env` (default: os.environ merged with .env).

    Raises ConfigError naming every missing required variable.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    missing = [name for name in REQUIRED if not env.get(name, "").strip()]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        deezer_app_id=env["DEEZER_APP_ID"].strip(),
        deezer_secret=env["DEEZER_SECRET"].strip(),
        spotify_client_id=env["SPOTIFY_CLIENT_ID"].strip(),
        spotify_client_secret=env["SPOTIFY_CLIENT_SECRET"].strip(),
        callback_host=env.get("CALLBACK_HOST", "").strip() or DEFAULT_CALLBACK_HOST,
        callback_port=_number(env, "CALLBACK_PORT", int, DEFAULT_CALLBACK_PORT),
        redirect_host=env.get("REDIRECT_HOST", "").strip() or DEFAULT_REDIRECT_HOST,
        poll_interval=_number(env, "AUTH_POLL_INTERVAL", float, DEFAULT_POLL_INTERVAL),
        poll_attempts=_number(env, "AUTH_POLL_ATTEMPTS", int, DEFAULT_POLL_ATTEMPTS),
    )
