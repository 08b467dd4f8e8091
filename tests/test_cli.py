"""Scenario tests for the http2curl command line."""

import logging
from unittest.mock import patch

import yaml

from http2curl.cli import _parse_headers, main
from tests.conftest import make_request_result

# ── Generate mode ────────────────────────────────────────────────────────


class TestGenerate:
    def test_simple_get(self, runner, tmp_project):
        result = runner.invoke(main, ["GET", "http://localhost:9999/", "--platform", "posix"])
        assert result.exit_code == 0
        assert result.output == "curl 'http://localhost:9999/' --compressed\n"

    def test_json_post(self, runner, tmp_project):
        result = runner.invoke(
            main,
            [
                "POST",
                "http://localhost:9999/api",
                "-H",
                "Content-Type: application/json",
                "-b",
                '{"a":1}',
                "--platform",
                "posix",
            ],
        )
        assert result.exit_code == 0
        assert result.output.strip() == (
            "curl 'http://localhost:9999/api' -H 'Content-Type: application/json' "
            "--data '{\"a\":1}' --compressed"
        )

    def test_method_lowercase(self, runner, tmp_project):
        result = runner.invoke(main, ["delete", "http://h/x", "--platform", "posix"])
        assert "-X DELETE" in result.output

    def test_windows_platform(self, runner, tmp_project):
        result = runner.invoke(main, ["GET", "http://h/?q=100%", "--platform", "windows"])
        assert result.exit_code == 0
        assert result.output.strip() == 'curl "http://h/?q=100"%"" --compressed'

    def test_host_header_443(self, runner, tmp_project):
        result = runner.invoke(
            main,
            ["GET", "/status", "-H", "Host: example.com:443", "--platform", "posix"],
        )
        assert result.exit_code == 0
        assert result.output.startswith("curl 'https://example.com:443/status'")

    def test_relative_url_without_host_fails(self, runner, tmp_project):
        result = runner.invoke(main, ["GET", "/status"])
        assert result.exit_code == 1
        assert "ERROR: Cannot infer host" in result.output

    def test_unsafe_method_argument_rejected(self, runner, tmp_project):
        result = runner.invoke(main, ["GET|id", "http://h/", "--platform", "posix"])
        assert result.exit_code == 1
        assert "ERROR: Unsupported HTTP method 'GET|ID'" in result.output

    def test_no_arguments_shows_help(self, runner, tmp_project):
        result = runner.invoke(main, [])
        assert result.exit_code == 1
        assert "Reproduce an HTTP request" in result.output


# ── Config ───────────────────────────────────────────────────────────────


class TestConfig:
    def _write(self, path, **defaults):
        path.write_text(yaml.dump({"defaults": defaults}))

    def test_base_url_and_headers(self, runner, tmp_project, monkeypatch):
        monkeypatch.setenv("API_TOKEN", "s3cret")
        self._write(
            tmp_project / ".http2curl.yaml",
            base_url="http://localhost:3000/",
            platform="posix",
            headers={"Authorization": "Bearer ${API_TOKEN}"},
        )
        result = runner.invoke(main, ["GET", "/api/users", "-H", "Accept: */*"])
        assert result.exit_code == 0
        assert result.output.strip() == (
            "curl 'http://localhost:3000/api/users' -H 'Authorization: Bearer s3cret' "
            "-H 'Accept: */*' --compressed"
        )

    def test_env_file(self, runner, tmp_project):
        (tmp_project / ".env").write_text("BASE=http://from-dotenv:8000\n")
        self._write(
            tmp_project / ".http2curl.yaml",
            base_url="${BASE}",
            env_file=".env",
            platform="posix",
        )
        result = runner.invoke(main, ["GET", "/x"])
        assert result.output.startswith("curl 'http://from-dotenv:8000/x'")

    def test_platform_flag_overrides_config(self, runner, tmp_project):
        self._write(tmp_project / ".http2curl.yaml", platform="posix")
        result = runner.invoke(main, ["GET", "http://h/", "--platform", "windows"])
        assert result.output.strip() == 'curl "http://h/" --compressed'

    def test_explicit_config_file(self, runner, tmp_project):
        cfg = tmp_project / "custom.yaml"
        self._write(cfg, platform="windows")
        result = runner.invoke(main, ["GET", "http://h/", "-c", str(cfg)])
        assert result.output.strip() == 'curl "http://h/" --compressed'

    @patch("http2curl.executor.execute_request")
    def test_send_settings_from_config(self, mock_exec, runner, tmp_project):
        mock_exec.return_value = make_request_result()
        self._write(
            tmp_project / ".http2curl.yaml",
            platform="windows",
            log_level="info",
            log_stacktrace=True,
            timeout=7,
        )
        result = runner.invoke(main, ["GET", "http://h/", "--send"])
        assert result.exit_code == 0
        _, kwargs = mock_exec.call_args
        assert kwargs["timeout"] == 7
        assert kwargs["options"].log_level == logging.INFO
        assert kwargs["options"].log_stacktrace is True
        assert kwargs["options"].mode.value == "windows"

    @patch("http2curl.executor.execute_request")
    def test_timeout_flag_overrides_config(self, mock_exec, runner, tmp_project):
        mock_exec.return_value = make_request_result()
        self._write(tmp_project / ".http2curl.yaml", timeout=7)
        runner.invoke(main, ["GET", "http://h/", "--send", "--timeout", "2"])
        _, kwargs = mock_exec.call_args
        assert kwargs["timeout"] == 2

    def test_bad_log_level_in_config(self, runner, tmp_project):
        self._write(tmp_project / ".http2curl.yaml", log_level="chatty")
        result = runner.invoke(main, ["GET", "http://h/"])
        assert result.exit_code == 1
        assert "ERROR: Unknown log_level 'chatty'" in result.output

    def test_bad_platform_in_config(self, runner, tmp_project):
        self._write(tmp_project / ".http2curl.yaml", platform="os2")
        result = runner.invoke(main, ["GET", "http://h/"])
        assert result.exit_code == 1
        assert "ERROR: Unknown platform" in result.output


# ── Import curl ──────────────────────────────────────────────────────────


class TestImportCurl:
    def test_convert_to_windows(self, runner, tmp_project):
        result = runner.invoke(
            main,
            [
                "--import-curl",
                "curl -H 'Content-Type: application/json' -d '{\"a\":\"50%\"}' http://h/api",
                "--platform",
                "windows",
            ],
        )
        assert result.exit_code == 0
        assert result.output.strip() == (
            'curl "http://h/api" -H "Content-Type: application/json" '
            '--data "{""a"":""50"%"""}" --compressed'
        )

    def test_canonical_posix(self, runner, tmp_project):
        result = runner.invoke(
            main,
            ["--import-curl", "curl -X PUT -k http://h/x", "--platform", "posix"],
        )
        assert result.output.strip() == "curl 'http://h/x' -X PUT --compressed"

    def test_injected_method_rejected(self, runner, tmp_project):
        result = runner.invoke(
            main,
            ["--import-curl", "curl -X 'GET;touch /tmp/pwned' http://h/", "--platform", "posix"],
        )
        assert result.exit_code == 1
        assert "ERROR: Unsupported HTTP method" in result.output
        assert "-X" not in result.output

    def test_parse_error(self, runner, tmp_project):
        result = runner.invoke(main, ["--import-curl", "curl 'http://h/"])
        assert result.exit_code == 1
        assert "Error parsing curl" in result.output


# ── Send mode ────────────────────────────────────────────────────────────


class TestSend:
    @patch("http2curl.executor.execute_request")
    def test_send_prints_status(self, mock_exec, runner, tmp_project):
        mock_exec.return_value = make_request_result(status_code=201, body={"id": 1})
        result = runner.invoke(
            main,
            ["POST", "http://h/items", "-H", "Content-Type: application/json", "-b", "{}", "--send"],
        )
        assert result.exit_code == 0
        assert "STATUS: 201" in result.output
        assert "TIME: 42ms" in result.output
        _, kwargs = mock_exec.call_args
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "http://h/items"
        assert kwargs["headers"] == [("Content-Type", "application/json")]
        assert kwargs["body"] == "{}"
        assert kwargs["timeout"] == 30

    @patch("http2curl.executor.execute_request")
    def test_send_options(self, mock_exec, runner, tmp_project):
        mock_exec.return_value = make_request_result()
        runner.invoke(
            main,
            ["GET", "http://h/", "--send", "--stacktrace", "--timeout", "5", "--platform", "windows"],
        )
        _, kwargs = mock_exec.call_args
        assert kwargs["timeout"] == 5
        assert kwargs["options"].log_stacktrace is True
        assert kwargs["options"].mode.value == "windows"

    @patch("http2curl.executor.execute_request")
    def test_send_error_exits_1(self, mock_exec, runner, tmp_project):
        mock_exec.return_value = make_request_result(
            error="Connection error: [Errno 111] Connection refused",
        )
        result = runner.invoke(main, ["GET", "http://localhost:9999/", "--send"])
        assert result.exit_code == 1
        assert "ERROR: Connection error" in result.output

    def test_send_logs_curl_to_stderr(self, runner, tmp_project, monkeypatch):
        from requests.adapters import HTTPAdapter

        from tests.test_interceptor import _response

        monkeypatch.setattr(HTTPAdapter, "send", lambda self, request, **kw: _response(request))
        result = runner.invoke(main, ["GET", "http://h/ping", "--send", "--platform", "posix"])
        assert result.exit_code == 0
        assert "curl 'http://h/ping'" in result.output
        assert "STATUS: 200" in result.output


class TestParseHeaders:
    def test_order_and_duplicates(self):
        assert _parse_headers(("A: 1", "B:2", "A: 3", "bogus")) == [
            ("A", "1"),
            ("B", "2"),
            ("A", "3"),
        ]
