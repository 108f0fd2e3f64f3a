import json
import sys

import pytest

import main
from models.scan import BatchSummary, ScanOutcome


class FakeEngine:
    def __init__(self, settings, exclude_extractors=None):
        self.settings = settings

    async def run(self, targets, catalog):
        return BatchSummary.from_outcomes(ScanOutcome.succeeded(t, []) for t in targets)


@pytest.fixture
def run_cli(monkeypatch):
    monkeypatch.setattr(main, "Engine", FakeEngine)

    def run(*args):
        monkeypatch.setattr(sys, "argv", ["main.py", *args])
        main.main()

    return run


def test_no_save_prints_only_json(run_cli, capsys):
    run_cli("--no-save", "--customer", "everlane")

    data = json.loads(capsys.readouterr().out)
    assert data["totalPages"] == 1
    assert data["results"][0]["customer"] == "Everlane"


def test_saved_results_and_console_summary(run_cli, capsys, tmp_path):
    run_cli("--results-dir", str(tmp_path))

    assert len(list(tmp_path.glob("scan-results-*.json"))) == 1
    assert "=== SCAN SUMMARY ===" in capsys.readouterr().out


def test_list_competitors_shows_signal_categories(run_cli, capsys):
    run_cli("--list-competitors")

    out = capsys.readouterr().out
    assert "algolia (script, apiRequest, windowVariable, dataAttribute, cookie, headTag, class)" in out


def test_unknown_customer_exits_with_error(run_cli):
    with pytest.raises(SystemExit) as exc_info:
        run_cli("--customer", "nobody-by-that-name")
    assert exc_info.value.code == 1
