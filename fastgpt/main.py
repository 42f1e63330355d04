"""fastgpt: command-line client for Kagi FastGPT."""

import argparse
import logging
import sys

from rich.console import Console
from rich.prompt import Confirm, Prompt

from fastgpt import render
from fastgpt.client import FastGPTClient
from fastgpt.config import ConfigStore, SessionConfig, Settings, mask_api_key
from fastgpt.errors import ConfigIoError, QueryError
from fastgpt.session.loop import Session

logger = logging.getLogger(__name__)

__version__ = "0.1.3"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_API_KEY = 2


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    if debug:
        logger.debug("DEBUG logging enabled")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fastgpt", description="Kagi FastGPT CLI client")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--set-api-key", metavar="KEY", help="set API key (will be saved for future use)")
    p.add_argument("--show-api-key", action="store_true", help="show current API key")
    p.add_argument("--reset-api-key", action="store_true", help="reset stored API key")
    p.add_argument("--config", action="store_true", help="interactive setup of key and defaults")
    p.add_argument("--cache", action=argparse.BooleanOptionalAction, default=None,
                   help="allow cached responses (default: from config, true)")
    p.add_argument("--references", action=argparse.BooleanOptionalAction, default=None,
                   help="show references under answers (default: from config, true)")
    p.add_argument("--json", action="store_true", help="output the raw JSON response")
    p.add_argument("--debug", action="store_true", help="debug logging to stderr")
    p.add_argument("query", nargs="*", help="ask a single question and exit")
    return p


def interactive_setup(store: ConfigStore, settings: Settings, console: Console) -> Settings:
    console.print("[bold bright_green]FastGPT setup[/bold bright_green]")
    default_key = settings.api_key or None
    api_key = Prompt.ask("API key", console=console, password=True, default=default_key, show_default=False)
    cache = Confirm.ask("Allow cached responses?", console=console, default=settings.cache_enabled)
    references = Confirm.ask("Show references?", console=console, default=settings.references_enabled)

    updated = settings.model_copy(update={
        "api_key": (api_key or "").strip(),
        "cache_enabled": cache,
        "references_enabled": references,
    })
    store.save(updated)
    console.print(f"[bright_green]Configuration saved to {store.path}[/bright_green]")
    return updated


def resolve_session_config(settings: Settings, args: argparse.Namespace) -> SessionConfig:
    """CLI flags win over stored settings."""
    return SessionConfig(
        api_key=settings.api_key,
        cache=settings.cache_enabled if args.cache is None else args.cache,
        references=settings.references_enabled if args.references is None else args.references,
        json_mode=args.json,
        history_limit=settings.history_limit,
        max_file_bytes=settings.max_file_bytes,
    )


def main(argv: list[str] | None = None, store: ConfigStore | None = None,
         console: Console | None = None, client: FastGPTClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = store or ConfigStore()
    console = console or Console()
    err_console = Console(stderr=True)

    try:
        settings = store.load()
        _configure_logging(args.debug or settings.debug)

        if args.reset_api_key:
            store.reset()
            console.print("[bright_yellow]API key has been reset.[/bright_yellow]")
            return EXIT_OK

        if args.set_api_key is not None:
            store.save(settings.model_copy(update={"api_key": args.set_api_key.strip()}))
            console.print("[bright_green]API key has been saved successfully![/bright_green]")
            return EXIT_OK

        if args.config:
            interactive_setup(store, settings, console)
            return EXIT_OK
    except ConfigIoError as e:
        render.print_error(err_console, e)
        return EXIT_ERROR

    if args.show_api_key:
        if settings.api_key:
            console.print(f"[bright_blue]Current API key:[/bright_blue] [bright_cyan]{mask_api_key(settings.api_key)}[/bright_cyan]")
        else:
            console.print("[bright_yellow]No API key is currently set.[/bright_yellow]")
        return EXIT_OK

    if not settings.api_key:
        err_console.print(
            "[bold bright_red]Error:[/bold bright_red] No API key found. "
            "Set one with: fastgpt --set-api-key YOUR_KEY (or run fastgpt --config)"
        )
        return EXIT_NO_API_KEY

    config = resolve_session_config(settings, args)
    client = client or FastGPTClient(config.api_key, settings.api_url, settings.timeout)
    session = Session(config, client, console=console)

    with client:
        if args.query:
            return _ask_once(session, " ".join(args.query))
        return session.run()


def _ask_once(session: Session, question: str) -> int:
    try:
        result = session.ask(question)
    except QueryError as e:
        render.print_error(session.console, e)
        return EXIT_ERROR
    if session.config.json_mode:
        render.print_raw(session.console, result)
    else:
        render.print_response(session.console, result, question, session.config.references)
    return EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
