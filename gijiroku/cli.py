"""Command line interface for gijiroku."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import mimetypes
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

import typer

from . import config as config_mod
from .config import ConfigError, resolve_api_key
from .enrichment import SlotStatus
from .errors import GijirokuError, ValidationError
from .export import BOM, export_filename, render, write_export
from .models import AVAILABLE_MODELS
from .session import TranscriptionSession
from .transcriber import get_backend

app = typer.Typer(add_completion=False, help="Meeting transcription and minutes tool powered by Gemini.")


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _guess_mime_type(audio: Path) -> str:
    mime_type, _ = mimetypes.guess_type(audio.name)
    return mime_type or ""


def _parse_renames(values: List[str]) -> Dict[str, str]:
    renames: Dict[str, str] = {}
    for value in values:
        default_speaker, sep, name = value.partition("=")
        if not sep or not default_speaker.strip():
            raise typer.BadParameter(f"Expected SPEAKER=NAME, got {value!r}", param_hint="--rename")
        renames[default_speaker.strip()] = name
    return renames


async def _run_session(
    session: TranscriptionSession,
    renames: Dict[str, str],
    summarise: bool,
    keywords: bool,
    action_items: bool,
) -> None:
    if not await session.transcribe():
        error = session.transcription.error
        _fail(error.message if error else "文字起こしに失敗しました。")

    if renames:
        try:
            session.rename_speakers(renames)
        except ValidationError as exc:
            _fail(exc.message)

    tasks = []
    if summarise:
        tasks.append(session.summarize())
    if keywords:
        tasks.append(session.extract_keywords())
    if action_items:
        tasks.append(session.extract_action_items())
    if tasks:
        await asyncio.gather(*tasks)


def _report_enrichments(session: TranscriptionSession) -> None:
    summary = session.summary.slot
    if summary.status is SlotStatus.SUCCEEDED:
        typer.secho("\n要約:\n" + (summary.result or ""), fg=typer.colors.GREEN)
    keywords = session.keywords.slot
    if keywords.status is SlotStatus.SUCCEEDED:
        typer.secho("\nキーワード:", fg=typer.colors.GREEN)
        for keyword in keywords.result or []:
            typer.echo(f"  - {keyword}")
    actions = session.action_items.slot
    if actions.status is SlotStatus.SUCCEEDED:
        typer.secho("\nアクションアイテム:", fg=typer.colors.GREEN)
        for item in actions.result or []:
            due = f" (期限: {item.due_date})" if item.due_date else ""
            typer.echo(f"  - [{item.assignee or '未定'}] {item.task or ''}{due}")
    for slot in (summary, keywords, actions):
        if slot.status is SlotStatus.FAILED and slot.error is not None:
            typer.secho(slot.error.message, fg=typer.colors.RED, err=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@app.command()
def transcribe(
    audio: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Path to the audio file."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Gemini model id."),
    speakers: Optional[int] = typer.Option(None, "--speakers", "-s", min=1, help="Number of speakers, if known."),
    rename: List[str] = typer.Option([], "--rename", help="Rename a speaker group, e.g. Speaker-A=Alice."),
    summarise: bool = typer.Option(False, "--summarise/--no-summarise", help="Create a Markdown summary."),
    keywords: bool = typer.Option(False, "--keywords/--no-keywords", help="Extract keywords."),
    action_items: bool = typer.Option(False, "--action-items/--no-action-items", help="Extract action items."),
    fmt: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: txt, md or csv."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the transcript to this file."),
    summary_output: Optional[Path] = typer.Option(None, "--summary-output", help="Write the summary to this file."),
    mime_type: Optional[str] = typer.Option(None, "--mime-type", help="Override the guessed audio MIME type."),
) -> None:
    """Transcribe an audio file and optionally enrich it."""

    try:
        cfg = config_mod.load_config()
    except ConfigError as exc:
        _fail(str(exc))

    fmt = fmt or cfg.export_format
    if fmt not in config_mod.EXPORT_FORMATS:
        _fail(f"Unsupported export format: {fmt}")
    renames = _parse_renames(rename)

    api_key = resolve_api_key(cfg)
    try:
        session = TranscriptionSession(
            api_key=api_key,
            model=model or cfg.model,
            speaker_count=speakers if speakers is not None else cfg.speaker_count,
            backend_factory=functools.partial(get_backend, timeout=cfg.api_timeout),
        )
        session.set_audio(audio.read_bytes(), mime_type or _guess_mime_type(audio), filename=audio.name)
    except GijirokuError as exc:
        _fail(exc.message)

    asyncio.run(_run_session(session, renames, summarise, keywords, action_items))

    content = render(session.rows, fmt)
    if output is not None:
        if output.is_dir():
            output = output / export_filename("transcription", fmt)
        write_export(output, content)
        typer.secho(f"Saved transcript to {output}.", fg=typer.colors.BLUE)
    else:
        typer.echo(content.removeprefix(BOM))

    _report_enrichments(session)

    summary = session.summary.slot.result
    if summary_output is not None and summary:
        if summary_output.is_dir():
            summary_output = summary_output / export_filename("summary", "md")
        write_export(summary_output, summary)
        typer.secho(f"Saved summary to {summary_output}.", fg=typer.colors.BLUE)


@app.command()
def models() -> None:
    """List the selectable Gemini models."""

    cfg = config_mod.load_config()
    for option in AVAILABLE_MODELS:
        marker = "*" if option.id == cfg.model else " "
        typer.echo(f"{marker} {option.id:<28}  {option.name}")


@app.command()
def config(
    api_key: Optional[str] = typer.Option(None, help="Gemini API key."),
    model: Optional[str] = typer.Option(None, help="Default Gemini model id."),
    speaker_count: Optional[int] = typer.Option(None, min=1, help="Default number of speakers."),
    export_format: Optional[str] = typer.Option(None, help="Default export format (txt, md, csv)."),
    api_timeout: Optional[float] = typer.Option(None, help="Request timeout (seconds) for API calls."),
    show: bool = typer.Option(False, "--show", help="Display the active configuration."),
) -> None:
    """Update or inspect configuration settings."""

    updates: Dict[str, object] = {
        key: value
        for key, value in {
            "api_key": api_key,
            "model": model,
            "speaker_count": speaker_count,
            "export_format": export_format,
            "api_timeout": api_timeout,
        }.items()
        if value is not None
    }

    if show or not updates:
        try:
            cfg = config_mod.load_config()
        except ConfigError as exc:
            _fail(str(exc))
        data = asdict(cfg)
        if data.get("api_key"):
            data["api_key"] = "********"
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        return

    try:
        config_mod.update_config(**updates)
    except ConfigError as exc:
        _fail(str(exc))
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


@app.command()
def login(
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Gemini API key.",
        prompt=True,
        hide_input=True,
    ),
) -> None:
    """Persist the Gemini API key."""

    try:
        config_mod.update_config(api_key=(api_key or "").strip() or None)
    except ConfigError as exc:
        _fail(str(exc))
    typer.secho("API key stored.", fg=typer.colors.BLUE)


@app.command()
def setup() -> None:
    """Run the interactive setup wizard."""

    from .onboarding import run_onboarding

    try:
        run_onboarding()
    except Exception as exc:
        _fail(f"Setup failed: {exc}")


@app.command()
def settings() -> None:
    """Open the interactive settings form."""

    from .settings_ui import show_settings_ui

    try:
        show_settings_ui()
    except Exception as exc:
        _fail(f"Settings UI failed: {exc}")


if __name__ == "__main__":  # pragma: no cover
    app()
