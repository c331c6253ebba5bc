"""siemship Command Line Interface.

Entry point for the siemship CLI tool.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from siemship import __version__
from siemship.contracts.records import LogsPayload
from siemship.core.config import PROTOCOL_HTTPS, ExporterSettings, load_settings

__all__ = [
    "app",
    "load_settings",
]

app = typer.Typer(
    name="siemship",
    help="siemship: batch and upload log records to a SIEM ingestion API.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"siemship version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """siemship: batch and upload log records to a SIEM ingestion API."""
    from siemship.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)


def _load_settings_or_exit(settings: str) -> ExporterSettings:
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _load_payload_or_exit(input_file: str) -> LogsPayload:
    input_path = Path(input_file).expanduser()
    try:
        document = json.loads(input_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        typer.echo(f"Error: Input file not found: {input_file}", err=True)
        raise typer.Exit(1) from None
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {input_file} is not valid JSON: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        return LogsPayload.from_otlp_json(document)
    except (ValueError, KeyError, TypeError) as e:
        typer.echo(f"Error: {input_file} is not an OTLP/JSON logs document: {e}", err=True)
        raise typer.Exit(1) from None


def _request_summary(request: Any) -> dict[str, Any]:
    return {
        "log_type": request.log_type,
        "namespace": request.namespace,
        "labels": len(request.labels),
        "entries": len(request.entries),
        "bytes": request.wire_size(),
    }


@app.command()
def plan(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    input_file: str = typer.Option(
        ...,
        "--input",
        "-i",
        help="OTLP/JSON logs document to marshal.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Show the upload requests a payload would produce, without sending."""
    from siemship.exporter.errors import ExporterConfigError
    from siemship.exporter.factory import create_marshaler

    config = _load_settings_or_exit(settings)
    payload = _load_payload_or_exit(input_file)

    try:
        marshaler = create_marshaler(config)
    except ExporterConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    summaries = [_request_summary(request) for request in marshaler.marshal_requests(payload)]

    if output_format == "json":
        typer.echo(json.dumps({"protocol": config.protocol, "records": payload.record_count, "requests": summaries}))
        return

    typer.echo(f"Protocol: {config.protocol}")
    typer.echo(f"Records: {payload.record_count}")
    typer.echo(f"Requests: {len(summaries)}")
    for index, summary in enumerate(summaries):
        typer.echo(
            f"  [{index}] log_type={summary['log_type'] or '-'} entries={summary['entries']} "
            f"bytes={summary['bytes']} labels={summary['labels']}"
        )


def _open_connection(config: ExporterSettings, token: str) -> Any:
    """Open an authorised transport handle for the configured protocol."""
    if config.protocol == PROTOCOL_HTTPS:
        import httpx

        return httpx.Client(headers={"Authorization": f"Bearer {token}"})

    import grpc

    credentials = grpc.composite_channel_credentials(
        grpc.ssl_channel_credentials(),
        grpc.access_token_call_credentials(token),
    )
    return grpc.secure_channel(f"{config.endpoint}:443", credentials)


@app.command()
def send(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    input_file: str = typer.Option(
        ...,
        "--input",
        "-i",
        help="OTLP/JSON logs document to upload.",
    ),
    token: str = typer.Option(
        ...,
        "--token",
        "-t",
        envvar="INGESTION_ACCESS_TOKEN",
        help="OAuth access token for the ingestion API.",
    ),
) -> None:
    """Upload a payload, retrying transient failures."""
    from siemship.exporter.errors import ExporterConfigError, UploadError
    from siemship.exporter.factory import create_exporter
    from siemship.exporter.retry import MaxRetriesExceeded, RetryConfig, RetryManager

    config = _load_settings_or_exit(settings)
    payload = _load_payload_or_exit(input_file)

    connection = _open_connection(config, token)
    try:
        try:
            exporter = create_exporter(config, connection)
        except ExporterConfigError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None

        manager = RetryManager(RetryConfig.from_settings(config.retry))
        try:
            manager.execute_with_retry(
                lambda: exporter.consume_logs(payload),
                on_retry=lambda attempt, error: typer.echo(f"Attempt {attempt} failed, retrying: {error}", err=True),
            )
        except MaxRetriesExceeded as e:
            typer.echo(f"Upload failed after {e.attempts} attempts: {e.last_error}", err=True)
            raise typer.Exit(1) from None
        except UploadError as e:
            typer.echo(f"Upload rejected: {e}", err=True)
            raise typer.Exit(1) from None
        finally:
            exporter.shutdown()
    finally:
        connection.close()

    if exporter.stats is not None:
        snapshot = exporter.stats.snapshot()
        typer.echo(f"Uploaded {snapshot['entries_sent']} entries in {snapshot['requests_sent']} requests ({snapshot['bytes_sent']} bytes)")
    else:
        typer.echo("Upload complete")


if __name__ == "__main__":
    app()
