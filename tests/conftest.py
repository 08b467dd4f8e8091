"""Shared fixtures for http2curl tests."""

import json

import pytest
from click.testing import CliRunner

from http2curl import core
from http2curl.executor import RequestResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def global_http2curl_dir(tmp_path, monkeypatch):
    """Override the global ~/.http2curl directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".http2curl"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture
def tmp_project(tmp_path, monkeypatch, global_http2curl_dir):
    """Run inside an empty project directory with no global config."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def make_request_result(
    status_code=200,
    body=None,
    headers=None,
    elapsed_ms=42.0,
    error=None,
    raw_text="",
):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.headers = headers or {}
    r.body = body
    r.elapsed_ms = elapsed_ms
    r.error = error
    r.raw_text = raw_text or (
        json.dumps(body) if isinstance(body, dict | list) else str(body or "")
    )
    return r
