"""Spotify side of the migration, built on spotipy.

The code arrives through our own callback listener, so SpotifyOAuth is only
used to build the consent URL and to swap the code for a token (it sends the
Basic base64(id:secret) header itself). Tokens live in memory only.
"""

import requests
import spotipy
import spotipy.exceptions
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from errors import ProviderApiError, TokenExchangeError
from log_setup import get_logger

log = get_logger("spotify")

SCOPES = "playlist-modify-private playlist-modify-public"
PLAYLIST_ADD_BATCH_SIZE = 100  # max URIs per POST /playlists/{id}/tracks
SEARCH_LIMIT = 5


class SpotifySession:
    name = "Spotify"

    def __init__(self, client_id, client_secret, redirect_uri, http=None):
        self.http = http or requests.Session()
        self.oauth = SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=SCOPES,
            show_dialog=True,
            open_browser=False,
            cache_handler=MemoryCacheHandler(),
            requests_session=self.http,
        )
        self.sp = None
        self.access_token = ""
        self.user_id = ""
        self.user_name = ""

    def __repr__(self):
        logged_in = "logged in" if self.access_token else "anonymous"
        return f"<SpotifySession {self.user_name or self.oauth.client_id} {logged_in}>"

    # --- OAuth ---

    def auth_url(self):
        return self.oauth.get_authorize_url()

    def fetch_token(self, code):
        """Exchange an authorization code for an access token."""
        try:
            token = self.oauth.get_access_token(code, as_dict=False, check_cache=False)
        except SpotifyOauthError as e:
            raise TokenExchangeError(self.name, e.error_description or str(e)) from e
        except requests.RequestException as e:
            raise TokenExchangeError(self.name, f"token request failed: {e}") from e
        except (KeyError, ValueError) as e:
            raise TokenExchangeError(self.name, f"malformed token response ({e})") from e

        if not token:
            raise TokenExchangeError(self.name, "empty access_token in token response")
        self.access_token = token
        self.sp = spotipy.Spotify(auth=token, requests_session=self.http)
        return token

    # --- API ---

    def _call(self, what, fn, *args, **kwargs):
        if self.sp is None:
            raise ProviderApiError(self.name, f"{what}: not logged in")
        try:
            return fn(*args, **kwargs)
        except spotipy.exceptions.SpotifyException as e:
            raise ProviderApiError(self.name, f"{what} failed ({e.http_status}): {e.msg}") from e
        except requests.RequestException as e:
            raise ProviderApiError(self.name, f"{what} failed: {e}") from e

    def fetch_user(self):
        me = self._call("current_user", lambda: self.sp.current_user())
        self.user_id = me["id"]
        self.user_name = me.get("display_name") or me["id"]
        return me

    def search_tracks(self, query, limit=SEARCH_LIMIT):
        """Run a track search, return the raw items."""
        results = self._call("search", lambda: self.sp.search(q=query, type="track", limit=limit))
        return results["tracks"]["items"]

    def create_playlist(self, name, public=False, description=""):
        """Create a playlist on the logged-in account, return its id."""
        result = self._call(
            "create playlist",
            lambda: self.sp.user_playlist_create(self.user_id, name, public=public, description=description),
        )
        return result["id"]

    def add_tracks(self, playlist_id, uris):
        """Append `uris` to the playlist in batches. Returns how many were added."""
        added = 0
        for start in range(0, len(uris), PLAYLIST_ADD_BATCH_SIZE):
            batch = uris[start:start + PLAYLIST_ADD_BATCH_SIZE]
            self._call("add tracks", lambda: self.sp.playlist_add_items(playlist_id, batch))
            added += len(batch)
        return added
