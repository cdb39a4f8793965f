"""
Recreate Deezer playlists on Spotify.

For each Deezer playlist: fetch its tracks, look each one up on Spotify, create
a Spotify playlist with the same name, description and visibility, and add the
tracks that were found, in playlist order. Every playlist is recreated, even
an empty one. Tracks with no Spotify match are logged and skipped; they never
fail the playlist. Provider API errors do (ProviderApiError).

Two Deezer tracks that resolve to the same Spotify track (an original and its
remaster, say) both land in the playlist unless dedupe=True.

Nothing is persisted between runs: running twice creates the playlists twice.
"""

from log_setup import get_logger
from matching import find_match, first_artist

log = get_logger("playlist_sync")


def match_tracks(spotify, tracks, dedupe=False):
    """Look up every track on Spotify.

    Returns (uris, skipped): one URI per matched track in playlist order, and
    the tracks that had no match. With dedupe, a URI already in the list is
    not repeated.
    """
    uris = []
    skipped = []
    for i, t in enumerate(tracks):
        label = f"{first_artist(t['artists'])} — {t['title']}"
        match = find_match(spotify, t)
        if match is None:
            skipped.append(t)
            log.info(f"  [{i+1}/{len(tracks)}] MISS  | {label}")
            continue

        log.info(f"  [{i+1}/{len(tracks)}] OK    {match['source']:6s} score={match['title_score']:.2f} | {label}")
        if dedupe and match["spotify_uri"] in uris:
            log.debug(f"  duplicate of an earlier track, added once: {match['spotify_uri']}")
            continue
        uris.append(match["spotify_uri"])
    return uris, skipped


def migrate_playlist(deezer, spotify, playlist, dry_run=False, dedupe=False):
    """Copy one Deezer playlist to Spotify. Returns a result dict."""
    name = playlist["name"]
    result = {
        "name": name,
        "spotify_playlist_id": None,
        "total": 0,
        "added": 0,
        "skipped": [],
    }

    tracks = playlist.get("tracks") or deezer.get_playlist_tracks(playlist["playlist_id"])
    result["total"] = len(tracks)

    uris = []
    if tracks:
        log.info(f"{name}: matching {len(tracks)} tracks...")
        uris, result["skipped"] = match_tracks(spotify, tracks, dedupe=dedupe)
        if not uris:
            log.warning(f"{name}: no tracks found on Spotify ({len(tracks)} unmatched)")
    else:
        log.info(f"{name}: empty on Deezer")

    skipped = result["skipped"]
    if dry_run:
        log.info(f"{name}: dry run, would create with {len(uris)} tracks ({len(skipped)} unmatched)")
        return result

    pl_id = spotify.create_playlist(
        name,
        public=playlist.get("public", False),
        description=playlist.get("description", ""),
    )
    result["spotify_playlist_id"] = pl_id
    result["added"] = spotify.add_tracks(pl_id, uris)
    log.info(f"{name}: → created {pl_id} with {result['added']} tracks ({len(skipped)} unmatched)")
    return result


def filter_playlists(playlists, names):
    """Keep playlists whose name is in `names` (exact match)."""
    filtered = [pl for pl in playlists if pl["name"] in names]
    found_names = {pl["name"] for pl in filtered}
    for name in names:
        if name not in found_names:
            log.warning(f"  Filter: no playlist named '{name}' found")
    return filtered


def migrate_all(deezer, spotify, filter_names=None, dry_run=False, dedupe=False):
    """Migrate every (or every filtered) Deezer playlist. Returns result dicts."""
    playlists = deezer.get_playlists()
    log.info(f"Found {len(playlists)} playlists on Deezer")

    if filter_names:
        playlists = filter_playlists(playlists, filter_names)
        log.info(f"Filtered to {len(playlists)} playlist(s): {', '.join(pl['name'] for pl in playlists)}")

    if dry_run:
        log.info("*** DRY RUN: nothing will be created on Spotify ***")

    results = [migrate_playlist(deezer, spotify, pl, dry_run=dry_run, dedupe=dedupe) for pl in playlists]
    log_summary(results)
    return results


def log_summary(results):
    created = [r for r in results if r["spotify_playlist_id"]]
    added = sum(r["added"] for r in results)
    skipped = sum(len(r["skipped"]) for r in results)
    log.info("")
    log.info(f"Playlists created:     {len(created)}/{len(results)}")
    log.info(f"Tracks added:          {added}")
    log.info(f"Tracks not found:      {skipped}")
    for r in results:
        for t in r["skipped"]:
            log.debug(f"  not found in '{r['name']}': {t['artists']} — {t['title']} (deezer {t['id']})")
