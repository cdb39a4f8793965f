"""Deezer side of the migration: OAuth login and read-only playlist access.

Deezer's OAuth is a plain GET to access_token.php; the API itself takes the
token as an `access_token` query parameter. Deezer reports most API errors as
HTTP 200 with an {"error": {...}} body, so every response is checked for it.
"""

from urllib.parse import urlencode

import requests

from errors import ProviderApiError, TokenExchangeError
from log_setup import get_logger

log = get_logger("deezer")

AUTH_URL = "https://connect.deezer.com/oauth/auth.php"
TOKEN_URL = "https://connect.deezer.com/oauth/access_token.php"
API_URL = "https://api.deezer.com"

PERMS = ["basic_access", "manage_library", "offline_access"]

REQUEST_TIMEOUT = 30


class DeezerSession:
    name = "Deezer"

    def __init__(self, app_id, secret, redirect_uri, http=None):
        self.app_id = app_id
        self.secret = secret
        self.redirect_uri = redirect_uri
        self.http = http or requests.Session()
        self.access_token = ""
        self.user_id = ""
        self.user_name = ""

    def __repr__(self):
        logged_in = "logged in" if self.access_token else "anonymous"
        return f"<DeezerSession {self.user_name or self.app_id} {logged_in}>"

    # --- OAuth ---

    def auth_url(self):
        query = urlencode({
            "app_id": self.app_id,
            "redirect_uri": self.redirect_uri,
            "perms": ",".join(PERMS),
        })
        return f"{AUTH_URL}?{query}"

    def fetch_token(self, code):
        """Exchange an authorization code for an access token."""
        params = {"app_id": self.app_id, "secret": self.secret, "code": code, "output": "json"}
        try:
            r = self.http.get(TOKEN_URL, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise TokenExchangeError(self.name, f"token request failed: {e}") from e

        if not r.ok:
            raise TokenExchangeError(self.name, f"token endpoint returned {r.status_code}: {r.text[:200]}")

        # A rejected code comes back as 200 "wrong code" in plain text.
        try:
            body = r.json()
        except ValueError:
            raise TokenExchangeError(self.name, f"unexpected token response: {r.text[:200]!r}") from None

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise TokenExchangeError(self.name, f"no access_token in token response: {body}")
        self.access_token = token
        return token

    # --- API ---

    def _get(self, path, **params):
        params["access_token"] = self.access_token
        url = f"{API_URL}{path}"
        try:
            r = self.http.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise ProviderApiError(self.name, f"GET {path} failed: {e}") from e
        if not r.ok:
            raise ProviderApiError(self.name, f"GET {path} returned {r.status_code}: {r.text[:200]}")
        try:
            data = r.json()
        except ValueError:
            raise ProviderApiError(self.name, f"GET {path} returned non-JSON: {r.text[:200]!r}") from None
        if isinstance(data, dict) and data.get("error"):
            err = data["error"]
            raise ProviderApiError(
                self.name, f"GET {path}: {err.get('type', 'Error')} {err.get('message', '')}".strip(),
            )
        return data

    def fetch_user(self):
        me = self._get("/user/me")
        self.user_id = str(me.get("id", ""))
        self.user_name = me.get("name", "")
        return me

    def get_playlists(self):
        """List the user's playlists (first page only), without tracks."""
        data = self._get("/user/me/playlists")
        playlists = []
        for p in data.get("data", []):
            playlists.append({
                "playlist_id": str(p["id"]),
                "name": p.get("title") or f"Playlist {p['id']}",
                "description": p.get("description", ""),
                "public": bool(p.get("public", False)),
                "tracks": [],
            })
        log.debug(f"Fetched {len(playlists)} Deezer playlists")
        return playlists

    def get_playlist_tracks(self, playlist_id):
        """Tracks of one playlist (first page only)."""
        data = self._get(f"/playlist/{playlist_id}/tracks")
        return [parse_track(t) for t in data.get("data", [])]


def parse_track(t):
    """Deezer track object -> migrator track dict."""
    artist = (t.get("artist") or {}).get("name", "")
    contributors = [c.get("name", "") for c in (t.get("contributors") or [])]
    names = [n for n in [artist] + contributors if n]
    # keep order, drop repeats
    artists = ", ".join(dict.fromkeys(names))
    return {
        "id": str(t.get("id", "")),
        "title": t.get("title", ""),
        "artists": artists,
        "album": (t.get("album") or {}).get("title", ""),
        "isrc": t.get("isrc", "") or "",
    }
