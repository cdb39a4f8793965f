"""Tests for matching.py — pure functions plus a fake Spotify search."""

from unittest.mock import MagicMock

import pytest

import matching


def item(track_id, name, artists=("Artist",)):
    return {
        "id": track_id,
        "uri": f"spotify:track:{track_id}",
        "name": name,
        "artists": [{"name": a} for a in artists],
    }


def fake_spotify(results_by_query):
    sp = MagicMock()
    sp.search_tracks.side_effect = lambda query, limit=5: results_by_query.get(query, [])
    return sp


class TestSimilarity:
    def test_accents_and_punctuation_ignored(self):
        assert matching.similarity("Déjà vu!", "deja vu") == 1.0

    def test_suffix_truncated(self):
        assert matching.similarity("Alors on danse", "Alors on danse - Radio Edit") == 1.0

    def test_different_titles(self):
        assert matching.similarity("Papaoutai", "Formidable") < matching.TITLE_MATCH_THRESHOLD

    def test_empty(self):
        assert matching.similarity("", "") == 1.0

    def test_one_side_empty(self):
        assert matching.similarity("", "Formidable") == 0.0

    def test_bracketed_notes_ignored(self):
        assert matching.similarity("Get Lucky (feat. Pharrell Williams)", "Get Lucky [Radio Edit]") == 1.0

    def test_near_miss_scores_below_exact(self):
        assert matching.TITLE_MATCH_THRESHOLD < matching.similarity("Formidable", "Formidaxle") < 1.0

    @pytest.mark.parametrize("raw,cleaned", [
        ("Déjà Vu (feat. X) - Live!", "deja vu live"),
        ("  Alors   on danse ", "alors on danse"),
        ("(Untitled)", "untitled"),
    ])
    def test_clean_title(self, raw, cleaned):
        assert matching.clean_title(raw) == cleaned

    def test_first_artist(self):
        assert matching.first_artist("Daft Punk, Pharrell Williams") == "Daft Punk"


class TestFindMatch:
    def test_isrc_hit(self):
        sp = fake_spotify({"isrc:FRZ111": [item("a", "One More Time")]})
        m = matching.find_match(sp, {"title": "One More Time", "artists": "Daft Punk", "isrc": "FRZ111"})
        assert m["spotify_uri"] == "spotify:track:a"
        assert m["source"] == "isrc"

    def test_isrc_miss_falls_back_to_search(self):
        sp = fake_spotify({
            "track:One More Time artist:Daft Punk": [item("b", "One More Time - Radio Edit")],
        })
        m = matching.find_match(sp, {"title": "One More Time", "artists": "Daft Punk", "isrc": "NOPE"})
        assert m["spotify_id"] == "b"
        assert m["source"] == "search"

    def test_best_scored_candidate_wins(self):
        sp = fake_spotify({
            "track:Formidable artist:Stromae": [item("x", "Formidaxle"), item("y", "Formidable")],
        })
        m = matching.find_match(sp, {"title": "Formidable", "artists": "Stromae, Someone", "isrc": ""})
        assert m["spotify_id"] == "y"
        assert m["title_score"] == 1.0

    def test_below_threshold(self):
        sp = fake_spotify({"track:Formidable artist:Stromae": [item("z", "Something Else Entirely")]})
        assert matching.find_match(sp, {"title": "Formidable", "artists": "Stromae", "isrc": ""}) is None

    def test_no_results(self):
        assert matching.find_match(fake_spotify({}), {"title": "Ghost", "artists": "", "isrc": ""}) is None

    @pytest.mark.parametrize("title", ['Say "Hello"', "Say Hello"])
    def test_quotes_stripped_from_query(self, title):
        sp = fake_spotify({})
        matching.find_match(sp, {"title": title, "artists": "A", "isrc": ""})
        query = sp.search_tracks.call_args[0][0]
        assert '"' not in query
