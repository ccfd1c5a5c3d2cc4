"""
Tests for the ColorTeller page.
"""

from unittest.mock import patch

import app as app_module
from app import create_app
from config import AppSettings
from region import RegionResolver, Resolved, Unknown, UnknownReason


class StubResolver:
    def __init__(self, result):
        self.result = result
        self.timeouts = []

    def resolve(self, timeout_ms=500):
        self.timeouts.append(timeout_ms)
        return self.result


def _client(result, **settings):
    app = create_app(AppSettings(**settings), StubResolver(result))
    app.config["TESTING"] = True
    return app.test_client()


def test_page_shows_region_and_color():
    response = _client(Resolved("us-central1"), color="#ff0000").get("/")
    assert response.status_code == 200
    assert response.content_type.startswith("text/html")
    body = response.get_data(as_text=True)
    assert "us-central1" in body
    assert "#ff0000" in body


def test_page_shows_unknown_region():
    body = _client(Unknown(UnknownReason.TIMEOUT)).get("/").get_data(as_text=True)
    assert "unknown (metadata timeout)" in body
    assert "#3B82F6" in body


def test_values_are_escaped():
    body = _client(Resolved("<script>"), color="red").get("/").get_data(as_text=True)
    assert "<script>" not in body
    assert "&lt;script&gt;" in body


def test_uses_configured_timeout():
    resolver = StubResolver(Resolved("us-east1"))
    app = create_app(AppSettings(metadata_timeout_ms=123), resolver)
    app.test_client().get("/")
    assert resolver.timeouts == [123]


def test_against_local_metadata_server(metadata_server):
    metadata_server.body = "projects/123/regions/europe-west1"
    resolver = RegionResolver(host="127.0.0.1", port=metadata_server.port)
    app = create_app(AppSettings(), resolver)
    body = app.test_client().get("/").get_data(as_text=True)
    assert "europe-west1" in body


def test_main_runs_app_on_configured_port(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    with patch("flask.Flask.run") as run, patch.object(app_module, "configure_logging"):
        app_module.main()
    run.assert_called_once_with(host="0.0.0.0", port=9090)
