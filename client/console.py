"""Terminal front end for the chat relay, rendered with Rich."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

from client import state as chat
from client.controller import ChatController
from client.relay_client import RelayClient
from client.render import (
    AppendBubble,
    BeginTyping,
    ClearMessages,
    EndTyping,
    Instruction,
    SetBubbleText,
    ShowError,
)
from client.storage import HistorySlot, SlotStore
from client.transcript import Transcript
from client.typewriter import TypingEngine
from config.settings import get_settings


HELP_TEXT = "Type a message and press Enter. Commands: /retry, /clear, /help, /quit"


class ConsoleView(Transcript):
    """Transcript that also echoes every change to the terminal.

    A terminal cannot rewrite earlier lines, so typing is printed as the new
    suffix of each increment and replaced bubbles are printed again.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        super().__init__()
        self.console = console or Console()

    def apply(self, instruction: Instruction) -> None:
        before = None
        if isinstance(instruction, SetBubbleText):
            existing = self.get(instruction.bubble_id)
            before = existing.text if existing is not None else None
        super().apply(instruction)
        self._echo(instruction, before)

    def _echo(self, instruction: Instruction, before: Optional[str]) -> None:
        out = self.console
        if isinstance(instruction, AppendBubble):
            if instruction.role == "user":
                out.print(f"[bold green]you:[/bold green] {escape(instruction.text)}")
            elif instruction.thinking:
                out.print(f"[dim]{escape(instruction.text)}[/dim]")
            else:
                out.print(f"[bold cyan]gemini:[/bold cyan] {escape(instruction.text)}")
        elif isinstance(instruction, BeginTyping):
            out.print("[bold cyan]gemini:[/bold cyan]", end=" ")
        elif isinstance(instruction, SetBubbleText):
            bubble = self.get(instruction.bubble_id)
            if bubble is not None and bubble.typing:
                prefix = before or ""
                if instruction.text.startswith(prefix):
                    out.print(escape(instruction.text[len(prefix):]), end="", soft_wrap=True)
                    return
            style = "dim" if instruction.thinking else "cyan"
            out.print(f"[{style}]{escape(instruction.text)}[/{style}]")
        elif isinstance(instruction, EndTyping):
            out.print()
        elif isinstance(instruction, ShowError):
            hint = "  [dim](/retry to try again)[/dim]" if instruction.retry else ""
            out.print(f"[bold red]{escape(instruction.text)}[/bold red]{hint}")
        elif isinstance(instruction, ClearMessages):
            out.clear()


async def run_console(console: Optional[Console] = None) -> None:
    settings = get_settings()
    view = ConsoleView(console)
    slot = HistorySlot(SlotStore(settings.chat_history_file))
    typing = TypingEngine(delay=settings.typing_delay)

    async with RelayClient(settings.chat_api_url, timeout=settings.chat_request_timeout) as relay:
        controller = ChatController(relay, slot, view, typing)
        controller.load()
        view.console.print(f"[dim]{HELP_TEXT}[/dim]")
        while True:
            try:
                line = await asyncio.to_thread(view.console.input, "[bold]> [/bold]")
            except (EOFError, KeyboardInterrupt):
                break
            command = line.strip()
            if command in {"/quit", "/exit"}:
                break
            if command == "/help":
                view.console.print(f"[dim]{HELP_TEXT}[/dim]")
            elif command == "/clear":
                controller.clear()
            elif command == "/retry":
                if chat.latest_failure(controller.state) is None:
                    view.console.print("[dim]Nothing to retry.[/dim]")
                else:
                    await controller.retry()
            else:
                await controller.submit(line)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.client_log_level.upper(), logging.WARNING),
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )
    try:
        asyncio.run(run_console())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
