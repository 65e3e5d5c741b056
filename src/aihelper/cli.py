"""Terminal front end for aihelper."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from aihelper.config import AssistantConfig, load_config
from aihelper.core.orchestrator import ChatOrchestrator
from aihelper.prompts import (
    QuickPrompt,
    build_explain_prompt,
    build_translate_prompt,
    clip_selection_for_prompt,
    truncate_preview,
)
from aihelper.session import ChatSession
from aihelper.types import ChatEvent, EventType, NormalizedResult, PageContext

console = Console()

_HISTORY_PATH = Path.home() / ".config" / "aihelper" / "prompt_history"


def _read_page(
    page: str | None,
    title: str,
    url: str,
    selection: str,
    max_chars: int,
) -> PageContext | None:
    if page is None and not selection:
        return None
    text = ""
    if page == "-":
        text = sys.stdin.read()
    elif page is not None:
        text = Path(page).read_text(encoding="utf-8", errors="replace")
    return PageContext.from_text(
        text, max_chars, title=title, url=url, selection=selection,
    )


def _render_result(result: NormalizedResult) -> None:
    if result.is_ok:
        console.print(Markdown(result.text.strip() or "(empty response)"))
    elif result.is_cancelled:
        console.print("[yellow]Cancelled.[/yellow]")
    else:
        console.print(f"[red]{result.error}[/red]")


def _on_retry(event: ChatEvent) -> None:
    console.print(
        f"[dim]Connection problem, retrying (attempt {event.data.get('attempt')})…[/dim]"
    )


async def _send(
    session: ChatSession,
    prompt: str,
    page: PageContext | None,
) -> NormalizedResult:
    """Send one prompt; Ctrl-C cancels the request instead of exiting."""
    loop = asyncio.get_running_loop()
    handler_installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        pass
    try:
        with console.status("[dim]Calling model…[/dim]"):
            return await session.send(prompt, page, include_page=page is not None)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _run_once(session: ChatSession, prompt: str, page: PageContext | None) -> int:
    result = await _send(session, prompt, page)
    _render_result(result)
    return 0 if result.is_ok else 1


async def _run_interactive(session: ChatSession, page: PageContext | None) -> int:
    _HISTORY_PATH.parent.mkdir(parents=True, exist_ok=True)
    prompt_session = PromptSession(
        history=FileHistory(str(_HISTORY_PATH)),
    )
    console.print("[dim]Type /clear to reset the conversation, /exit to quit.[/dim]")
    if page is not None:
        console.print("[dim]Page context will be included with each question.[/dim]")

    while True:
        try:
            user_input = (await prompt_session.prompt_async("❯ ")).strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Goodbye![/dim]")
            return 0

        if not user_input:
            continue
        if user_input in ("/exit", "/quit"):
            console.print("[dim]Goodbye![/dim]")
            return 0
        if user_input == "/clear":
            session.history.clear()
            console.print("[dim]Conversation cleared.[/dim]")
            continue

        result = await _send(session, user_input, page)
        _render_result(result)
        console.print()


async def _main(
    config: AssistantConfig,
    prompt: str | None,
    page: PageContext | None,
) -> int:
    orchestrator = ChatOrchestrator(config)
    orchestrator.event_bus.subscribe(EventType.CHAT_RETRYING, _on_retry)
    session = ChatSession(orchestrator)
    try:
        if prompt is not None:
            return await _run_once(session, prompt, page)
        return await _run_interactive(session, page)
    finally:
        await orchestrator.close()


@click.command()
@click.argument("prompt", required=False)
@click.option("--config", "-c", "config_path", default=None,
              help="Path to aihelper.yaml (auto-detected from CWD or ~/.config/aihelper/)")
@click.option("--page", "-p", default=None,
              type=click.Path(exists=True, dir_okay=False, allow_dash=True),
              help="File holding the page text to include ('-' for stdin)")
@click.option("--title", default="", help="Page title for the context block")
@click.option("--url", default="", help="Page URL for the context block")
@click.option("--selection", default="", help="Selected text for the context block")
@click.option("--translate", "translate_text", default=None,
              help="Translate TEXT between Chinese and English and exit")
@click.option("--explain", "explain_text", default=None,
              help="Explain TEXT and exit")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def main(
    prompt: str | None,
    config_path: str | None,
    page: str | None,
    title: str,
    url: str,
    selection: str,
    translate_text: str | None,
    explain_text: str | None,
    verbose: bool,
) -> None:
    """Chat with an LLM about a page, from the terminal."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    config = load_config(config_path)
    missing = config.missing_fields()
    if missing:
        raise click.UsageError(
            f"Missing configuration: {', '.join(missing)} "
            "(set it in aihelper.yaml or AIHELPER_TOKEN)"
        )

    quick: QuickPrompt | None = None
    if translate_text is not None or explain_text is not None:
        if not config.enable_selection_actions:
            raise click.UsageError(
                "Quick actions are disabled (set enable_selection_actions: true)"
            )
        raw = translate_text if translate_text is not None else explain_text
        clipped = clip_selection_for_prompt(raw or "")
        if not clipped.text:
            raise click.UsageError("Quick actions need some text")
        if translate_text is not None:
            quick = build_translate_prompt(clipped.text)
        else:
            quick = build_explain_prompt(clipped.text)
        console.print(Panel(truncate_preview(clipped.text), title=quick.title))
        prompt = quick.prompt

    page_context = None
    if quick is None:
        page_context = _read_page(page, title, url, selection, config.max_page_chars)

    sys.exit(asyncio.run(_main(config, prompt, page_context)))


if __name__ == "__main__":
    main()
