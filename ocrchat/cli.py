"""Typer CLI: list engines, run OCR on an image, chat about it, check API keys, serve the API."""

import asyncio
from pathlib import Path

import pyperclip
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from ocrchat.ai.factory import list_engines, parse_engine_id
from ocrchat.core.config import get_config
from ocrchat.core.credentials import CredentialKind, Credentials, credential_label, is_valid_credential
from ocrchat.core.errors import OCRChatError
from ocrchat.core.image import ImageArtifact
from ocrchat.core.logging import setup_logging
from ocrchat.controller import SessionController
from ocrchat.ocr.job import JobState, OCRJob

app = typer.Typer(no_args_is_help=True)
keys_app = typer.Typer(help="Inspect configured API keys.")
app.add_typer(keys_app, name="keys")

console = Console()

QUIT_COMMANDS = {"/quit", "/exit"}
RESET_COMMAND = "/reset"


@app.callback()
def main(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to an ocrchat.yml config file"),
) -> None:
    """Extract text from an image and chat about it."""
    try:
        cfg = get_config(config)
    except (FileNotFoundError, ValidationError) as e:
        _fail(f"Invalid configuration: {e}")
    setup_logging(cfg)


def _load_artifact(image: Path | None, clipboard: bool) -> ImageArtifact:
    if clipboard:
        return ImageArtifact.from_clipboard()
    if image is None:
        raise typer.BadParameter("Pass an IMAGE path or --clipboard.")
    return ImageArtifact.from_path(image)


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _run_ocr(controller: SessionController, engine: str | None) -> OCRJob:
    """Run OCR with a live progress bar."""
    columns = (TextColumn("[bold]{task.description}"), BarColumn(), TextColumn("{task.percentage:>3.0f}%"))
    with Progress(*columns, console=console, transient=True) as progress:
        task = progress.add_task(f"OCR ({engine or controller.engine_id.value})", total=100)

        def on_change(job: OCRJob) -> None:
            progress.update(task, completed=job.progress)

        controller.on_job_change = on_change
        job = asyncio.run(controller.process(engine))
    return job


def _print_job(job: OCRJob) -> None:
    if job.state == JobState.failed:
        _fail(job.error or "Text recognition failed.")
    console.print(Panel(job.result or "", title=f"Extracted text ({job.engine_id.value})"))


@app.command("engines")
def engines() -> None:
    """List OCR engines and whether their API key is configured."""
    creds = Credentials.from_settings(get_config())
    table = Table(title=None)
    table.add_column("Engine", no_wrap=True)
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("API key")
    for d in list_engines():
        if d.credential_kind is None:
            key_status = "not needed"
        elif creds.has(d.credential_kind):
            key_status = "configured"
        else:
            key_status = "[red]missing[/red]"
        table.add_row(d.id.value, d.name, d.description, key_status)
    console.print(table)


@app.command("ocr")
def ocr(
    image: Path | None = typer.Argument(None, help="Image file to read"),
    engine: str | None = typer.Option(None, "--engine", "-e", help="tesseract, gpt4-vision or gemini-vision"),
    clipboard: bool = typer.Option(False, "--clipboard", help="Read the image from the clipboard"),
    copy_text: bool = typer.Option(False, "--copy", help="Copy the extracted text to the clipboard"),
) -> None:
    """Extract the text from an image."""
    try:
        if engine is not None:
            parse_engine_id(engine)
        artifact = _load_artifact(image, clipboard)
    except (OCRChatError, ValueError) as e:
        _fail(str(e))
    controller = SessionController()
    with artifact:
        controller.load_image(artifact)
        job = _run_ocr(controller, engine)
    _print_job(job)
    if copy_text:
        try:
            pyperclip.copy(job.result or "")
        except pyperclip.PyperclipException as e:
            _fail(f"Could not copy to the clipboard: {e}")
        typer.secho("Copied to clipboard.", fg=typer.colors.GREEN)


@app.command("chat")
def chat(
    image: Path | None = typer.Argument(None, help="Image file to chat about"),
    engine: str | None = typer.Option(None, "--engine", "-e", help="OCR engine used for the grounding text"),
    clipboard: bool = typer.Option(False, "--clipboard", help="Read the image from the clipboard"),
) -> None:
    """Extract the text from an image, then ask questions about it (empty line or /quit exits)."""
    try:
        if engine is not None:
            parse_engine_id(engine)
        artifact = _load_artifact(image, clipboard)
    except (OCRChatError, ValueError) as e:
        _fail(str(e))
    controller = SessionController()
    if not controller.credentials.has(CredentialKind.openai):
        _fail("An OpenAI API key is required to chat. Set OPENAI_API_KEY or openai_api_key in the config.")
    with artifact:
        controller.load_image(artifact)
        job = _run_ocr(controller, engine)
        if job.state == JobState.failed:
            typer.secho(f"OCR failed: {job.error}. Chatting without extracted text.", fg=typer.colors.YELLOW)
        else:
            console.print(Panel(job.result or "", title=f"Extracted text ({job.engine_id.value})"))
        console.print("Ask a question about the image. /reset starts over, /quit exits.")
        while True:
            question = typer.prompt("You", default="", show_default=False)
            if not question.strip() or question.strip() in QUIT_COMMANDS:
                break
            if question.strip() == RESET_COMMAND:
                controller.reset_chat()
                console.print("[dim]Conversation cleared.[/dim]")
                continue
            try:
                with console.status("Thinking..."):
                    answer = asyncio.run(controller.ask(question))
            except OCRChatError as e:
                typer.secho(str(e), fg=typer.colors.RED, err=True)
                continue
            if answer is not None:
                console.print(f"[bold]Assistant:[/bold] {answer.content}")


@keys_app.command("check")
def keys_check() -> None:
    """Shape-check the configured API keys (prefix and length only)."""
    creds = Credentials.from_settings(get_config())
    ok = True
    for kind in CredentialKind:
        value = creds.get(kind)
        label = credential_label(kind)
        if value is None:
            typer.echo(f"{label}: not set")
        elif is_valid_credential(kind, value):
            typer.echo(f"{label}: looks valid")
        else:
            ok = False
            typer.secho(f"{label}: malformed", fg=typer.colors.RED)
    if not ok:
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Port"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("ocrchat.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
