"""Terminal rendering for answers, history and notices."""

import html
import re

from rich.console import Console
from rich.markup import escape
from rich.text import Text

from fastgpt.client import QueryResult
from fastgpt.session.state import FileContext, Role, Turn

_SPANS = re.compile(r"\*\*(?P<bold>.+?)\*\*|`(?P<code>.+?)`|\*(?P<italic>.+?)\*")

_SPAN_STYLES = {
    "bold": "bold bright_white",
    "code": "bright_white on bright_black",
    "italic": "italic",
}

WIDE = 80


def format_markdown_text(text: str) -> Text:
    """
    Decode HTML entities and style **bold**, *italic* and `code` spans.
    The answer text is never parsed as rich markup.
    """
    source = html.unescape(text)
    result = Text()
    pos = 0
    for match in _SPANS.finditer(source):
        result.append(source[pos:match.start()])
        kind = match.lastgroup
        result.append(match.group(kind), style=_SPAN_STYLES[kind])
        pos = match.end()
    result.append(source[pos:])
    return result


def rule(console: Console, char: str = "=", style: str = "bright_blue", width: int = WIDE) -> None:
    console.print(char * width, style=style, markup=False, highlight=False)


def print_commands(console: Console, commands) -> None:
    for cmd in commands:
        console.print(f"  [bright_cyan]{escape(cmd.usage)}[/bright_cyan] - {escape(cmd.description)}")


def print_banner(console: Console, session_id: str, commands) -> None:
    rule(console)
    console.print("[bold bright_green]Kagi FastGPT CLI[/bold bright_green]")
    console.print(f"[dim]Session ID:[/dim] [bright_cyan]{session_id}[/bright_cyan]")
    rule(console)
    console.print()
    console.print("[bold bright_yellow]Commands:[/bold bright_yellow]")
    print_commands(console, commands)
    console.print()
    console.print("[bold bright_magenta]Tip:[/bold bright_magenta] Just start typing your question!")
    console.print()


def print_error(console: Console, err: Exception) -> None:
    console.print(f"[bold bright_red]Error:[/bold bright_red] {escape(str(err))}")


def print_notice(console: Console, message: str, style: str = "bright_yellow") -> None:
    console.print(f"[{style}]{escape(message)}[/{style}]")


def print_response(console: Console, result: QueryResult, query: str, show_references: bool = True) -> None:
    rule(console)
    console.print(f"[bold bright_green]Query:[/bold bright_green] {escape(query)}")
    rule(console)
    console.print()
    console.print(format_markdown_text(result.answer))
    console.print()

    if show_references and result.references:
        console.print("[bold bright_yellow]References:[/bold bright_yellow]")
        rule(console, "-", "yellow", 40)
        for i, ref in enumerate(result.references, 1):
            title = format_markdown_text(ref.title)
            title.stylize("bold bright_white")
            console.print(Text.assemble((f"{i}. ", "bright_cyan"), title))
            console.print(Text("   ") + Text(ref.url, style="underline blue"))
            if ref.snippet:
                snippet = format_markdown_text(ref.snippet)
                snippet.stylize("dim")
                console.print(Text("   ") + snippet)
            console.print()

    rule(console, "-", "bright_black")
    console.print(
        f"[dim]Tokens:[/dim] [bright_magenta]{result.tokens}[/bright_magenta] | "
        f"[dim]Node:[/dim] [bright_magenta]{escape(result.meta.node)}[/bright_magenta] | "
        f"[dim]Time:[/dim] [bright_magenta]{result.meta.ms}[/bright_magenta]ms"
    )


def print_raw(console: Console, result: QueryResult) -> None:
    """Raw response body, no reformatting."""
    console.out(result.raw, highlight=False)


def print_history(console: Console, turns: list[Turn]) -> None:
    if not turns:
        console.print("[dim]No conversation history.[/dim]")
        return

    console.print("[bold bright_blue]Conversation History:[/bold bright_blue]")
    rule(console, width=50)
    for i, turn in enumerate(turns, 1):
        if turn.role is Role.USER:
            label, style = "You", "bold bright_green"
        else:
            label, style = "FastGPT", "bold bright_magenta"
        console.print(Text.assemble((f"{i}. ", "bright_cyan"), (label, style), ": ", turn.content))
    console.print()


def print_files(console: Console, files: list[FileContext]) -> None:
    if not files:
        console.print("[dim]No files in context.[/dim]")
        return

    console.print("[bold bright_blue]Files in context:[/bold bright_blue]")
    for ctx in files:
        console.print(Text.assemble("  ", (ctx.path, "bright_cyan"), (f" ({len(ctx.content)} chars)", "dim")))
