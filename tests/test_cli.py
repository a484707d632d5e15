"""
tests/test_cli.py

Pytest unit tests for the site analysis command-line entry point.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest

from prospect_audit.analysis.errors import TransportError

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "run_site_analysis.py"


@pytest.fixture()
def cli() -> ModuleType:
    spec = importlib.util.spec_from_file_location("run_site_analysis", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _failing_service(error: Exception) -> type:
    class _Service:
        def analyze(self, *, url: str, mode: str):
            raise error

    return _Service


def test_unreachable_primary_page_exits_with_message(cli, monkeypatch, capsys) -> None:
    failure = TransportError("HTTP error! status: 404", status_code=404)
    monkeypatch.setattr(cli, "SiteAnalysisService", _failing_service(failure))
    monkeypatch.setattr(cli, "configure_logging", lambda: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["https://example.com/missing"])

    assert excinfo.value.code == 1
    assert capsys.readouterr().err == (
        "Error on current page (https://example.com/missing): HTTP error! status: 404\n"
    )


def test_invalid_url_is_a_usage_error(cli, monkeypatch, capsys) -> None:
    failure = ValueError("Only http(s) URLs can be analyzed.")
    monkeypatch.setattr(cli, "SiteAnalysisService", _failing_service(failure))
    monkeypatch.setattr(cli, "configure_logging", lambda: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["about:blank"])

    assert excinfo.value.code == 2
    assert "Only http(s) URLs can be analyzed." in capsys.readouterr().err
