"""Shared fixtures: analysis records and library tracks."""

import pytest

from mixdeck.models import LibraryTrack, TrackAnalysis


def analysis_dict(**overrides):
    """Analysis record as delivered by the external service."""
    data = {
        "bpm": 124,
        "key": "8A",
        "genre": "House",
        "duration": "3:30",
        "vocalStart": "0:32",
        "chorusStart": "1:04",
        "mood": "Euphoric",
        "structuralPoints": [
            {"timestamp": "0:00", "description": "INTRO", "energy": "Low"},
            {"timestamp": "1:04", "description": "EST.", "energy": "High"},
            {"timestamp": "3:00", "description": "OUTRO", "energy": "Medium"},
        ],
        "djTips": "Mix out during the outro.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_track():
    """Factory for library tracks with a given id, bpm and key."""
    counter = {"n": 0}

    def _make(track_id=None, bpm=124.0, key="8A", file_name=None, date_added=None, **overrides):
        counter["n"] += 1
        analysis = TrackAnalysis.from_dict(analysis_dict(bpm=bpm, key=key, **overrides))
        return LibraryTrack.create(
            analysis,
            file_name=file_name or f"track-{counter['n']}.mp3",
            track_id=track_id or f"track-{counter['n']}",
            date_added=date_added if date_added is not None else 1_700_000_000_000 + counter["n"],
        )

    return _make


@pytest.fixture
def analysis_record():
    """Factory for raw analysis dicts."""
    return analysis_dict
