"""Command-line interface for Sparkvoice.

Responsibilities:
- Expose operator commands for generation, verification, scheduling, and storage.
- Convert CLI arguments into `SparkvoiceConfig` and run the `AudioPipeline`.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    echo_generation_result,
    echo_verification_report,
    exit_with_command_error,
)
from .config import ConfigLoader, RuntimeConfigSources, SparkvoiceConfig
from .credentials import create_credential_store
from .errors import PipelineStageError
from .parsing import normalize_optional_string
from .pipeline import AudioPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="sparkvoice",
    no_args_is_help=True,
    help="Sparkvoice audio pre-generation and verification CLI.",
)

VERIFY_FAILED_EXIT_CODE = 2

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Optional YAML config path; defaults to environment."),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option("--api-key", help="OpenAI API key for this run (not persisted)."),
]


def _load_config(config_path: Path | None) -> SparkvoiceConfig:
    """Load YAML or environment config and map failures to stage errors."""

    if config_path is None:
        try:
            return ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix the `SPARKVOICE_*` environment variables and rerun.",
            ) from exc

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except OSError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to read config file `{config_path}`: {exc}",
            hint="Verify file permissions.",
        ) from exc


def _build_pipeline(config_path: Path | None, api_key: str | None = None) -> AudioPipeline:
    """Resolve config plus runtime key sources and build the pipeline."""

    config = _load_config(config_path)
    runtime_cli_values: dict[str, str] = {}
    normalized_api_key = normalize_optional_string(api_key)
    if normalized_api_key is not None:
        runtime_cli_values["api_key"] = normalized_api_key

    runtime_secure_values: dict[str, str] = {}
    stored_api_key = create_credential_store().get_api_key()
    if stored_api_key is not None:
        runtime_secure_values["api_key"] = stored_api_key

    config.runtime_sources = RuntimeConfigSources(
        cli=runtime_cli_values,
        secure=runtime_secure_values,
        env=config.runtime_sources.env,
    )
    return AudioPipeline(config, run_logger=RunLogger())


@app.command("generate-window")
def generate_window_command(
    days: Annotated[
        int | None,
        typer.Option("--days", min=0, help="Look-ahead days (defaults to config `lead_days`)."),
    ] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Narrate content scheduled from civic today through the look-ahead window."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        result = pipeline.generate_window(days)
    except Exception as exc:
        exit_with_command_error("generate-window", exc)

    echo_generation_result(result)


@app.command("generate-batch")
def generate_batch_command(
    limit: Annotated[int, typer.Argument(min=1, help="Maximum successful generations.")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Regenerate items that already have audio."),
    ] = False,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Narrate up to LIMIT items across all content, in stable order."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        result = pipeline.generate_limited(limit, force=force)
    except Exception as exc:
        exit_with_command_error("generate-batch", exc)

    echo_generation_result(result)
    for key in result.generated_ids:
        typer.echo(f"Generated: {key}")


@app.command("generate-bulk")
def generate_bulk_command(
    batch_size: Annotated[
        int | None,
        typer.Option(
            "--batch-size",
            min=1,
            help="Successful generations between cooldowns (defaults to config).",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Regenerate items that already have audio."),
    ] = False,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Narrate every item, pausing for a cooldown between batches."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        result = pipeline.generate_bulk(batch_size, force=force)
    except Exception as exc:
        exit_with_command_error("generate-bulk", exc)

    echo_generation_result(result)


@app.command("regenerate-all")
def regenerate_all_command(
    batch_size: Annotated[int, typer.Argument(min=1, help="Items to regenerate in this run.")],
    start_from: Annotated[
        int,
        typer.Argument(min=0, help="Zero-based offset into all content."),
    ] = 0,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Force-regenerate one page of all content and print how to continue."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        page = pipeline.regenerate_range(start_from, batch_size)
    except Exception as exc:
        exit_with_command_error("regenerate-all", exc)

    typer.echo(f"Range: {page.start}-{page.end} of {page.total_items}")
    echo_generation_result(page.result)
    if page.next_offset is None:
        typer.echo("All items processed.")
    else:
        typer.echo(f"Next: sparkvoice regenerate-all {batch_size} {page.next_offset}")


@app.command("verify")
def verify_command(
    max_retries: Annotated[
        int | None,
        typer.Option("--max-retries", min=1, help="Attempts per missing item."),
    ] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Verify today's and tomorrow's content has audio, repairing gaps."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        report = pipeline.verify(max_retries)
    except Exception as exc:
        exit_with_command_error("verify", exc)

    echo_verification_report(report)
    if report.needs_attention:
        typer.secho(
            "Manual attention required: some items are still missing audio.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=VERIFY_FAILED_EXIT_CODE)


@app.command("schedule")
def schedule_command(
    max_firings: Annotated[
        int | None,
        typer.Option("--max-firings", min=0, help="Stop after N scheduled jobs."),
    ] = None,
    no_startup: Annotated[
        bool,
        typer.Option("--no-startup", help="Skip the immediate windowed generation."),
    ] = False,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Run the daily verification and pre-generation scheduler."""

    try:
        pipeline = _build_pipeline(config_file, api_key)
        fired = pipeline.serve(max_firings=max_firings, startup=not no_startup)
    except Exception as exc:
        exit_with_command_error("schedule", exc)

    typer.echo(f"Scheduler stopped after {fired} job(s).")


@app.command("delete-audio")
def delete_audio_command(
    kind: Annotated[str, typer.Argument(help="Content kind: `spark` or `plan`.")],
    item_id: Annotated[int, typer.Argument(help="Spark id or reading-plan id.")],
    day: Annotated[
        int | None,
        typer.Option("--day", min=1, help="Reading-plan day number."),
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """Delete one stored narration so it is regenerated on the next pass."""

    try:
        pipeline = _build_pipeline(config_file)
        deleted = pipeline.delete_audio(kind, item_id, day)
    except Exception as exc:
        exit_with_command_error("delete-audio", exc)

    if deleted:
        typer.echo("Audio deleted.")
    else:
        typer.echo("No audio found to delete.")


@app.command("fetch-audio")
def fetch_audio_command(
    kind: Annotated[str, typer.Argument(help="Content kind: `spark` or `plan`.")],
    item_id: Annotated[int, typer.Argument(help="Spark id or reading-plan id.")],
    out: Annotated[Path, typer.Option("--out", help="Destination file path.")],
    day: Annotated[
        int | None,
        typer.Option("--day", min=1, help="Reading-plan day number."),
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """Download one stored narration to a local file."""

    try:
        pipeline = _build_pipeline(config_file)
        payload = pipeline.fetch_audio(kind, item_id, day)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(payload)
    except Exception as exc:
        exit_with_command_error("fetch-audio", exc)

    typer.echo(f"Saved {len(payload)} bytes to {out}")


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for and store an OpenAI API key in secure storage.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Remove the stored OpenAI API key from secure storage.",
        ),
    ] = False,
) -> None:
    """Inspect or manage the securely stored OpenAI API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "OpenAI API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored OpenAI API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
