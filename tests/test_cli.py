# Area: Shared Tests
# PRD: docs/prd-match-lifecycle.md
"""Tests for the command-line interface."""

import json
import logging
import os
import tempfile
from unittest.mock import patch

import pytest

from companion_matches import MatchDaemon
from companion_matches.cli import build_parser, main


class TestCli:
    """Tests for cli.main."""

    @pytest.fixture
    def db_path(self):
        fd, path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        yield path
        os.unlink(path)

    @pytest.fixture(autouse=True)
    def env(self, db_path):
        with patch.dict(os.environ, {"COMPANION_DB_PATH": db_path}), \
                patch("companion_matches._config.load_dotenv"):
            yield
        # main() installs package handlers; hand logging back to pytest
        pkg_logger = logging.getLogger("companion_matches")
        pkg_logger.handlers.clear()
        pkg_logger.propagate = True

    @pytest.fixture
    def daemon(self, db_path):
        return MatchDaemon({
            "db_path": db_path,
            "packs": {"league": {"subpacks": {"0": {"columns": {"kills": "integer"}}}}},
        })

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_init_db(self, db_path, capsys):
        assert main(["init-db"]) == 0
        assert db_path in capsys.readouterr().out

    def test_status_empty(self, capsys):
        assert main(["status"]) == 0
        assert "No in-progress matches" in capsys.readouterr().out

    def test_status_lists_matches(self, daemon, capsys):
        daemon.handle_pack_message("league", {
            "type": "write_stats", "subpack": 0, "external_match_id": "EUW1_42", "stats": {},
        })
        assert main(["status", "--pack", "league"]) == 0
        out = capsys.readouterr().out
        assert "EUW1_42" in out
        assert "RECOVERY" in out
        row = next(line for line in out.splitlines() if "EUW1_42" in line)
        # lazy creation logged one statistic entry
        assert row.split()[5] == "1"

    def test_timeline(self, daemon, capsys):
        daemon.handle_pack_message("league", {
            "type": "write_events", "subpack": 0, "external_match_id": "M1",
            "events": [
                {"event_type": "Kill", "timestamp_secs": 5.0},
                {"event_type": "Death", "timestamp_secs": 9.0},
            ],
        })
        capsys.readouterr()

        code = main([
            "timeline", "--pack", "league", "--subpack", "0", "--match", "M1",
            "--types", "event", "--limit", "1",
        ])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["found"] is True
        assert [e["entry_key"] for e in data["entries"]] == ["Death"]

    def test_timeline_not_found(self, capsys):
        code = main(["timeline", "--pack", "league", "--subpack", "0", "--match", "NOPE"])
        assert code == 1
        assert json.loads(capsys.readouterr().out) == {"found": False, "entries": []}

    def test_timeline_bad_type(self, capsys):
        code = main([
            "timeline", "--pack", "league", "--subpack", "0", "--match", "M1", "--types", "clip",
        ])
        assert code == 2
        assert "Error" in capsys.readouterr().err

    def test_missing_config_file(self, capsys):
        assert main(["--config", "/nonexistent.json", "status"]) == 1
        assert "CONFIG_ERROR" in capsys.readouterr().err
