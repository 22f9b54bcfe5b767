"""
Integration tests for the mixdeck command line, using file storage.
"""

import json

import pytest
from mixdeck.cli import main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "mixdeck.toml"
    path.write_text(
        "[storage]\n"
        'backend = "file"\n'
        f'path = "{(tmp_path / "store").as_posix()}"\n'
        "[batch]\n"
        "inter_item_delay_seconds = 0.0\n"
    )
    return str(path)


@pytest.fixture
def analysis_files(tmp_path, analysis_record):
    files = []
    for name, bpm, key in (("intro_tool.json", 124, "8A"), ("peak.json", 126, "9A"), ("ballad.json", 80, "3B")):
        path = tmp_path / name
        path.write_text(json.dumps(analysis_record(bpm=bpm, key=key)), encoding="utf-8")
        files.append(str(path))
    return files


def run(config_path, *args):
    return main(["-c", config_path, *args])


def library_ids(tmp_path):
    return [r["id"] for r in json.loads((tmp_path / "store" / "library.dat").read_text())]


class TestCli:
    def test_ingest_and_list(self, config_path, analysis_files, capsys):
        assert run(config_path, "ingest", *analysis_files) == 0
        assert "Added 3 of 3 tracks." in capsys.readouterr().out

        assert run(config_path, "list", "--sort", "bpm") == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 3
        assert lines[0].endswith("ballad.json")
        # Ingest selects the last processed track
        assert lines[0].startswith("*")

    def test_ingest_all_failing(self, config_path, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{}")
        assert run(config_path, "ingest", str(bad)) == 1
        assert "No file could be analyzed" in capsys.readouterr().err

    def test_suggest(self, config_path, analysis_files, tmp_path, capsys):
        run(config_path, "ingest", *analysis_files)
        first_id = library_ids(tmp_path)[-1]  # intro_tool, ingested first
        capsys.readouterr()

        assert run(config_path, "suggest", first_id) == 0
        out = capsys.readouterr().out
        assert "Best match:" in out
        assert "peak.json" in out
        assert "ballad.json" not in out

    def test_suggest_without_selection(self, config_path, capsys):
        assert run(config_path, "suggest") == 1
        assert "No track selected" in capsys.readouterr().err

    def test_timeline(self, config_path, analysis_files, capsys):
        run(config_path, "ingest", analysis_files[0])
        capsys.readouterr()

        assert run(config_path, "timeline") == 0
        out = capsys.readouterr().out
        assert "INTRO" in out
        assert "CHORUS" in out
        assert "OUTRO" in out

    def test_export_import_delete(self, config_path, analysis_files, tmp_path, capsys):
        run(config_path, "ingest", *analysis_files)
        export_path = tmp_path / "backup.json"

        assert run(config_path, "export", str(export_path)) == 0
        assert len(json.loads(export_path.read_text())) == 3

        victim = library_ids(tmp_path)[0]
        assert run(config_path, "delete", victim) == 0
        assert victim not in library_ids(tmp_path)

        capsys.readouterr()
        assert run(config_path, "import", str(export_path)) == 0
        assert "Imported 1 new tracks (3 in library)" in capsys.readouterr().out
        assert library_ids(tmp_path)[0] == victim

    def test_import_rejects_non_array(self, config_path, tmp_path, capsys):
        path = tmp_path / "wrong.json"
        path.write_text('{"library": []}')

        assert run(config_path, "import", str(path)) == 1
        assert "JSON array" in capsys.readouterr().err

    def test_delete_unknown(self, config_path, capsys):
        assert run(config_path, "delete", "nope") == 0
        assert "nothing deleted" in capsys.readouterr().out

    def test_stats(self, config_path, analysis_files, capsys):
        run(config_path, "ingest", *analysis_files)
        capsys.readouterr()

        assert run(config_path, "stats") == 0
        out = capsys.readouterr().out
        assert "Tracks:   3" in out
        assert "Mean BPM: 110" in out

    def test_corrupt_library_warns_and_continues(self, config_path, tmp_path, capsys):
        store_dir = tmp_path / "store"
        store_dir.mkdir()
        (store_dir / "library.dat").write_text("not json")

        assert run(config_path, "list") == 0
        captured = capsys.readouterr()
        assert "Starting with an empty library" in captured.err
        assert "Library is empty." in captured.out

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[suggestions]\nmax_suggestions = 99\n")
        assert main(["-c", str(path), "stats"]) == 1
