"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
generation summaries, and verification reports.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import GenerationResult, VerificationReport

_MAX_LISTED_ERRORS = 20


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_errors(errors: list[str]) -> None:
    """Print collected per-item error lines, truncated for long runs."""

    if not errors:
        return
    typer.secho(f"Errors ({len(errors)}):", fg=typer.colors.YELLOW, err=True)
    for line in errors[:_MAX_LISTED_ERRORS]:
        typer.secho(f"  - {line}", fg=typer.colors.YELLOW, err=True)
    hidden = len(errors) - _MAX_LISTED_ERRORS
    if hidden > 0:
        typer.secho(f"  ... {hidden} more", fg=typer.colors.YELLOW, err=True)


def echo_generation_result(result: GenerationResult) -> None:
    """Print aggregate counters for one generation pass."""

    typer.echo(f"Total: {result.total}")
    typer.echo(f"Generated: {result.generated}")
    typer.echo(f"Skipped: {result.skipped}")
    typer.echo(f"Failed: {result.failed}")
    echo_errors(result.errors)


def echo_verification_report(report: VerificationReport) -> None:
    """Print verification counters and every item still missing audio."""

    typer.echo(f"Checked: {report.checked}")
    typer.echo(f"Ready: {report.ready}")
    typer.echo(f"Missing: {report.missing}")
    typer.echo(f"Repaired: {report.repaired}")
    typer.echo(f"Skipped: {report.skipped}")
    typer.echo(f"Failed repairs: {len(report.failed_repairs)}")
    for failure in report.failed_repairs:
        scheduled = failure.scheduled_date.isoformat() if failure.scheduled_date else "unscheduled"
        typer.secho(
            f"  ! {failure.item_key} ({failure.title}, {scheduled}): {failure.error}",
            fg=typer.colors.RED,
            err=True,
        )
    if not report.failed_repairs:
        echo_errors(report.errors)
