"""Find the Spotify counterpart of a Deezer track.

Tries an exact ISRC lookup first (both catalogs expose it), then falls back to
a title + first-artist search ranked by difflib title similarity.
"""

import re
import unicodedata
from difflib import SequenceMatcher

TITLE_MATCH_THRESHOLD = 0.7

_BRACKETED = re.compile(r"\([^)]*\)|\[[^\]]*\]")


def first_artist(artists_str):
    """First name of a comma-separated artist string."""
    return artists_str.split(",")[0].strip()


def clean_title(title):
    """Lowercase accent-folded title with bracketed notes and punctuation removed.

    "Déjà Vu (feat. X) - Live!" -> "deja vu live"
    """
    text = unicodedata.normalize("NFKD", title or "")
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = _BRACKETED.sub("", text).strip() or text
    text = re.sub(r"\s*-\s*", " ", text)
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip().lower()


def similarity(a, b):
    """0..1 similarity of two titles, SequenceMatcher ratio on cleaned text.

    The longer title is also compared cut to the shorter one's length, so
    "Alors on danse" vs "Alors on danse - Radio Edit" scores 1.0.
    """
    ca, cb = clean_title(a), clean_title(b)
    if not ca and not cb:
        return 1.0
    score = SequenceMatcher(None, ca, cb).ratio()
    short, long_ = sorted((ca, cb), key=len)
    if short and len(short) < len(long_):
        score = max(score, SequenceMatcher(None, short, long_[:len(short)]).ratio())
    return score


def _candidate(item, score, source):
    return {
        "spotify_id": item["id"],
        "spotify_uri": item["uri"],
        "spotify_name": item["name"],
        "spotify_artists": ", ".join(a["name"] for a in item.get("artists", [])),
        "title_score": round(score, 3),
        "source": source,
    }


def score_items(items, title):
    """Search items -> candidates, best title similarity first."""
    scored = [_candidate(item, similarity(title, item["name"]), "search") for item in items]
    return sorted(scored, key=lambda c: c["title_score"], reverse=True)


def _quote(s):
    # Spotify field filters break on embedded double quotes
    return s.replace('"', " ").strip()


def find_match(spotify, track):
    """Best Spotify candidate for `track`, or None.

    `spotify` is anything with search_tracks(query) -> list of track items.
    """
    isrc = (track.get("isrc") or "").strip()
    if isrc:
        items = spotify.search_tracks(f"isrc:{isrc}", limit=1)
        if items:
            return _candidate(items[0], similarity(track["title"], items[0]["name"]), "isrc")

    artist = first_artist(track.get("artists", ""))
    query = f"track:{_quote(track['title'])}"
    if artist:
        query += f" artist:{_quote(artist)}"
    ranked = score_items(spotify.search_tracks(query), track["title"])
    if ranked and ranked[0]["title_score"] >= TITLE_MATCH_THRESHOLD:
        return ranked[0]
    return None
