# tests/unit/cli/test_cli.py
"""Tests for the siemship CLI.

`plan` runs for real against temporary settings and OTLP/JSON files.
`send` gets an httpx.Client backed by a MockTransport in place of a real
connection.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from siemship.cli import app

runner = CliRunner()

CUSTOMER_ID = "123e4567-e89b-12d3-a456-426614174000"


def _record(body: str, log_type: str | None = None) -> dict[str, Any]:
    record: dict[str, Any] = {
        "timeUnixNano": "1704067201000000000",
        "observedTimeUnixNano": "1704067202000000000",
        "body": {"stringValue": body},
    }
    if log_type is not None:
        record["attributes"] = [{"key": "chronicle_log_type", "value": {"stringValue": log_type}}]
    return record


def _document(records: list[dict[str, Any]]) -> dict[str, Any]:
    return {"resourceLogs": [{"scopeLogs": [{"logRecords": records}]}]}


@pytest.fixture
def grpc_settings(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(
        f"""
customer_id: "{CUSTOMER_ID}"
log_type: WINEVTLOG
raw_log_field: body
batch_log_count_limit_grpc: 2
"""
    )
    return path


@pytest.fixture
def https_settings(tmp_path: Path) -> Path:
    path = tmp_path / "https.yaml"
    path.write_text(
        f"""
protocol: https
endpoint: chronicle.googleapis.com
customer_id: "{CUSTOMER_ID}"
log_type: WINEVTLOG
raw_log_field: body
location: us
project: test-project
forwarder: forwarder-1
retry:
  max_attempts: 1
"""
    )
    return path


@pytest.fixture
def payload_file(tmp_path: Path) -> Path:
    path = tmp_path / "logs.json"
    records = [_record("one"), _record("two"), _record("three"), _record("alert", log_type="ASOC_ALERT")]
    path.write_text(json.dumps(_document(records)))
    return path


class TestCLIBasics:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "siemship version" in result.stdout

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "plan" in result.stdout
        assert "send" in result.stdout


class TestPlanCommand:
    """Tests for dry-run request planning."""

    def test_console_output(self, grpc_settings: Path, payload_file: Path) -> None:
        result = runner.invoke(app, ["plan", "-s", str(grpc_settings), "-i", str(payload_file)])

        assert result.exit_code == 0, result.output
        assert "Protocol: gRPC" in result.stdout
        assert "Records: 4" in result.stdout
        assert "Requests: 3" in result.stdout
        assert "log_type=ASOC_ALERT entries=1" in result.stdout

    def test_json_output(self, grpc_settings: Path, payload_file: Path) -> None:
        result = runner.invoke(app, ["plan", "-s", str(grpc_settings), "-i", str(payload_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        document = json.loads(result.stdout)
        assert document["protocol"] == "gRPC"
        assert document["records"] == 4
        assert [(r["log_type"], r["entries"]) for r in document["requests"]] == [
            ("WINEVTLOG", 1),
            ("WINEVTLOG", 2),
            ("ASOC_ALERT", 1),
        ]
        assert all(r["bytes"] > 0 for r in document["requests"])

    def test_https_plan(self, https_settings: Path, payload_file: Path) -> None:
        result = runner.invoke(app, ["plan", "-s", str(https_settings), "-i", str(payload_file), "-f", "json"])

        assert result.exit_code == 0, result.output
        document = json.loads(result.stdout)
        assert document["protocol"] == "https"
        assert [r["entries"] for r in document["requests"]] == [3, 1]

    def test_missing_settings_file(self, tmp_path: Path, payload_file: Path) -> None:
        result = runner.invoke(app, ["plan", "-s", str(tmp_path / "nope.yaml"), "-i", str(payload_file)])
        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_settings(self, tmp_path: Path, payload_file: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("endpoint: https://example.com\n")

        result = runner.invoke(app, ["plan", "-s", str(path), "-i", str(payload_file)])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output
        assert "endpoint" in result.output

    def test_bad_customer_id(self, tmp_path: Path, payload_file: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("customer_id: not-a-uuid\n")

        result = runner.invoke(app, ["plan", "-s", str(path), "-i", str(payload_file)])

        assert result.exit_code == 1
        assert "parse customer ID" in result.output

    def test_input_not_json(self, grpc_settings: Path, tmp_path: Path) -> None:
        path = tmp_path / "logs.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["plan", "-s", str(grpc_settings), "-i", str(path)])

        assert result.exit_code == 1
        assert "is not valid JSON" in result.output

    def test_input_missing(self, grpc_settings: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["plan", "-s", str(grpc_settings), "-i", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "Input file not found" in result.output


class TestSendCommand:
    """Tests for uploading with a mocked HTTPS connection."""

    def _client(self, status_code: int, seen: list[httpx.Request]) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(status_code, text="{}")

        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_successful_upload(self, https_settings: Path, payload_file: Path) -> None:
        seen: list[httpx.Request] = []

        with patch("siemship.cli._open_connection", return_value=self._client(200, seen)):
            result = runner.invoke(app, ["send", "-s", str(https_settings), "-i", str(payload_file), "-t", "token"])

        assert result.exit_code == 0, result.output
        assert "Uploaded 4 entries in 2 requests" in result.stdout
        assert [request.url.path.split("/")[-2] for request in seen] == ["WINEVTLOG", "ASOC_ALERT"]

    def test_rejected_upload(self, https_settings: Path, payload_file: Path) -> None:
        seen: list[httpx.Request] = []

        with patch("siemship.cli._open_connection", return_value=self._client(400, seen)):
            result = runner.invoke(app, ["send", "-s", str(https_settings), "-i", str(payload_file), "-t", "token"])

        assert result.exit_code == 1
        assert "Upload rejected" in result.output
        # Fail fast: the second log type is never sent
        assert len(seen) == 1

    def test_token_from_environment(self, https_settings: Path, payload_file: Path) -> None:
        with patch("siemship.cli._open_connection", return_value=self._client(200, [])) as open_connection:
            result = runner.invoke(
                app,
                ["send", "-s", str(https_settings), "-i", str(payload_file)],
                env={"INGESTION_ACCESS_TOKEN": "from-env"},
            )

        assert result.exit_code == 0, result.output
        assert open_connection.call_args.args[1] == "from-env"
