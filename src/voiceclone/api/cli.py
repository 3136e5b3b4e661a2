"""Command Line Interface for the voice clone client."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from voiceclone import __version__
from voiceclone.cloning import CloneOrchestrator, JobResolver, VoiceCloneClient
from voiceclone.core.config import settings
from voiceclone.core.exceptions import VoiceCloneError
from voiceclone.core.structured_logging import configure_logging
from voiceclone.core.models import (
    BackendOutcome,
    CloneJob,
    JobOutcome,
    LanguageCode,
    OutcomeState,
    SynthesisFailed,
    SynthesisSucceeded,
)
from voiceclone.utils.language_mapper import LanguageMapper
from voiceclone.utils.logger import get_logger

logger = get_logger(__name__)
console = Console()

OUTCOME_STYLES = {
    OutcomeState.SUCCEEDED: ("✅ Voice cloned", "green"),
    OutcomeState.FAILED: ("❌ Clone failed", "red"),
    OutcomeState.TIMED_OUT: ("⏰ Timed out", "yellow"),
    OutcomeState.CANCELLED: ("🛑 Cancelled", "yellow"),
}


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--base-url", help="Backend base URL (overrides VOICECLONE_API_BASE_URL)")
@click.version_option(version=__version__)
def cli(verbose: bool, base_url: str | None) -> None:
    """Voice Clone - submit reference audio and text, get cloned speech back."""
    if verbose:
        settings.log_level = "DEBUG"
        configure_logging(json_logs=settings.log_format == "json", log_level="DEBUG")
    if base_url:
        settings.api_base_url = base_url


def display_outcome(outcome: JobOutcome, saved_to: Path | None = None) -> None:
    """Display a job outcome in a formatted panel."""
    title, style = OUTCOME_STYLES[outcome.state]
    lines = [title]
    job = outcome.job
    if job is not None and job.job_id:
        lines.append(f"🆔 Task: {job.job_id}")
    if job is not None and job.poll_count:
        lines.append(f"🔁 Polls: {job.poll_count}")
    if outcome.succeeded:
        lines.append(f"🎵 Audio: {outcome.artifact_location}")
    else:
        lines.append(f"💬 Reason: {outcome.reason}")
        if outcome.error_code:
            lines.append(f"🏷️  Code: {outcome.error_code}")
    if saved_to:
        lines.append(f"💾 Audio saved: {saved_to}")

    console.print(Panel("\n".join(lines), border_style=style))


async def _run_clone(
    reference: Path,
    text: str,
    language: str | None,
    model: str | None,
    output: Path | None,
    download: bool,
    timeout: float | None,
    interval: float | None,
) -> tuple[JobOutcome, Path | None]:
    async with VoiceCloneClient() as client:
        resolver = JobResolver(client, poll_interval=interval, timeout=timeout)
        orchestrator = CloneOrchestrator(client=client, resolver=resolver)

        with console.status("[bold blue]Submitting clone request...") as status:

            def on_tick(job: CloneJob) -> None:
                status.update(
                    f"[bold blue]Waiting for task {job.job_id} (poll {job.poll_count})..."
                )

            handle = orchestrator.submit_clone_job(
                reference, text, language, model, on_tick=on_tick
            )
            try:
                outcome = await handle.wait()
            except asyncio.CancelledError:
                handle.cancel()
                outcome = await handle.wait()

        saved_to = None
        if outcome.succeeded and (output or download):
            with console.status("[bold blue]Downloading generated audio..."):
                saved_to = await client.download_artifact(
                    outcome.artifact_location, output  # type: ignore[arg-type]
                )
        return outcome, saved_to


@cli.command()
@click.argument("reference", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("text")
@click.option(
    "--language",
    "-l",
    help=f"Locale tag or alias ({', '.join(LanguageCode.get_supported_codes())})",
)
@click.option("--model", "-m", help="Synthesis model variant")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Save generated audio to this file",
)
@click.option("--download", is_flag=True, help="Save generated audio into the download directory")
@click.option("--timeout", type=float, help="Polling budget in seconds")
@click.option("--interval", type=float, help="Seconds between status polls")
def clone(
    reference: Path,
    text: str,
    language: str | None,
    model: str | None,
    output: Path | None,
    download: bool,
    timeout: float | None,
    interval: float | None,
) -> None:
    """Clone the voice in REFERENCE speaking TEXT."""
    console.print(
        Panel(
            f"🎤 Reference: {reference}\n"
            f"📝 Text: {text[:80] + '...' if len(text) > 80 else text}\n"
            f"🌍 Language: {language or settings.default_language}",
            title="Voice Clone",
            border_style="blue",
        )
    )

    try:
        outcome, saved_to = asyncio.run(
            _run_clone(reference, text, language, model, output, download, timeout, interval)
        )
    except VoiceCloneError as e:
        # Only the download step can raise here
        console.print(f"❌ Download failed: {e.message}", style="red")
        sys.exit(1)

    display_outcome(outcome, saved_to)
    if not outcome.succeeded:
        sys.exit(1)


@cli.command()
@click.argument("task_id")
def status(task_id: str) -> None:
    """Query the backend once for the status of TASK_ID."""

    async def fetch() -> BackendOutcome:
        async with VoiceCloneClient() as client:
            return await client.fetch_status(task_id)

    try:
        with console.status(f"[bold blue]Querying task {task_id}..."):
            outcome = asyncio.run(fetch())
    except VoiceCloneError as e:
        console.print(f"❌ {e.error_code}: {e.message}", style="red")
        sys.exit(1)

    if isinstance(outcome, SynthesisSucceeded):
        console.print(f"✅ Task {task_id} succeeded: {outcome.artifact_location}", style="green")
    elif isinstance(outcome, SynthesisFailed):
        console.print(f"❌ Task {task_id} failed: {outcome.reason}", style="red")
    else:
        console.print(f"⏳ Task {task_id} is still processing", style="yellow")


@cli.command()
def languages() -> None:
    """List supported languages and accepted aliases."""
    mapper = LanguageMapper(LanguageCode.get_supported_codes())

    table = Table(title="Supported Languages")
    table.add_column("Locale", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Aliases", style="green")

    for tag, name in mapper.get_supported_languages().items():
        default = " (default)" if tag == settings.default_language else ""
        table.add_row(tag, name + default, ", ".join(mapper.aliases_for(tag)))

    console.print(table)


@cli.command()
def config() -> None:
    """Show effective configuration."""
    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    values = {
        **settings.get_backend_config(),
        **settings.get_polling_config(),
        "max_audio_bytes": settings.max_audio_bytes,
        "max_text_length": settings.max_text_length,
        "default_language": settings.default_language,
        "default_model": settings.default_model,
        "download_dir": settings.download_dir,
        "log_level": settings.log_level,
        "log_format": settings.log_format,
    }
    for key, value in values.items():
        table.add_row(key, "-" if value is None else str(value))

    console.print(table)


def main() -> None:
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        console.print(f"💥 Unexpected error: {e}", style="red")
        sys.exit(1)


if __name__ == "__main__":
    main()
