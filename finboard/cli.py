"""Click CLI — config loading, provider and board setup, deliberation, history."""

import asyncio
import logging
import sys
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule

from config.config_loader import AppConfig, load_config
from finboard.board import BoardMeeting
from finboard.healthcheck import run_health_checks
from finboard.inbox import archive_file, ensure_dirs, purchase_from_file, scan_inbox
from finboard.member import BoardMember, ConfigurationError
from finboard.models import URGENCIES, BoardDeliberation, Persona, PurchaseRequest
from finboard.output import print_event, print_history, print_persona, print_purchase, print_verdict, save_to_file
from finboard.personas import PersonaRegistry, active_personas, all_personas, create_registry
from finboard.providers.anthropic import AnthropicProvider
from finboard.providers.base import LLMProvider, ProviderError
from finboard.providers.gemini import GeminiProvider
from finboard.providers.openai_provider import OpenAIProvider
from finboard.session_store import SessionStore

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}

CATEGORIES = ["tech", "fashion", "food", "entertainment", "health", "travel", "home", "education", "other"]


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load_app_config(verbose: bool) -> AppConfig:
    load_dotenv()
    _setup_logging(verbose)
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


def _build_provider(config: AppConfig, name: str) -> LLMProvider:
    """Instantiate the named completion provider or exit with a message."""
    model_cfg = config.models.get(name)
    if model_cfg is None:
        console.print(f"[bold red]Error:[/bold red] Unknown provider '{name}'. Check settings.yaml.")
        sys.exit(1)
    if name not in config.available_providers:
        console.print(f"[bold red]Error:[/bold red] Provider '{name}' has no API key. Set {model_cfg.api_key_env} in .env.")
        sys.exit(1)
    try:
        return PROVIDER_CLASSES[model_cfg.sdk](model_cfg)
    except ProviderError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


def _check_provider(provider: LLMProvider) -> None:
    console.print("\n[bold]Checking provider...[/bold]")
    results = asyncio.run(run_health_checks({provider.name(): provider}))
    ok, err = results[provider.name()]
    if ok:
        console.print(f"  [green]OK  [/green] {provider.name()} ({provider.model_string()})\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {provider.name()}: {short_err}")
    sys.exit(1)


def _select_personas(config: AppConfig, personas_arg: str | None) -> tuple[PersonaRegistry, list[Persona]]:
    """--personas overrides the configured active set."""
    active_ids = (
        [p.strip() for p in personas_arg.split(",") if p.strip()]
        if personas_arg
        else config.defaults.active_personas
    )
    registry = create_registry(config.defaults.personas_dir, config.defaults.data_dir, active_ids)
    return registry, active_personas(registry)


def _build_board(
    personas: list[Persona],
    provider: LLMProvider,
    config: AppConfig,
    parallel: bool,
) -> BoardMeeting:
    """Build members and the meeting once; any ConfigurationError exits before a run."""
    try:
        members = [
            BoardMember(
                persona,
                provider,
                temperature=config.defaults.temperature,
                max_tokens=config.defaults.max_tokens,
            )
            for persona in personas
        ]
        board = BoardMeeting(members, parallel_execution=parallel)
    except ConfigurationError as exc:
        console.print(f"[bold red]Board configuration error:[/bold red] {exc}")
        sys.exit(1)
    board.subscribe(lambda event: print_event(event, console))
    return board


def _parse_price(raw: str) -> Decimal:
    try:
        price = Decimal(raw)
    except InvalidOperation as exc:
        raise click.BadParameter(f"'{raw}' is not a number", param_hint="--price") from exc
    if price <= 0:
        raise click.BadParameter("price must be positive", param_hint="--price")
    return price


async def _run_board(board: BoardMeeting, purchase: PurchaseRequest) -> BoardDeliberation:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Board is deliberating...", total=None)
        return await board.deliberate(purchase)


def _deliberate_once(
    config: AppConfig,
    board: BoardMeeting,
    purchase: PurchaseRequest,
    store: SessionStore,
    save: bool,
) -> BoardDeliberation:
    console.print(Rule("[bold cyan]Board Meeting[/bold cyan]"))
    console.print(f"[dim]Board members: {', '.join(m.name for m in board.members)}[/dim]\n")

    deliberation = asyncio.run(_run_board(board, purchase))

    store.add_deliberation(deliberation)
    print_verdict(deliberation, console)
    if save:
        saved_path = save_to_file(deliberation, config.defaults.output_dir)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return deliberation


@click.group()
def main() -> None:
    """Finance board -- an AI advisory board that votes on your purchases.

    \b
    Examples:
      finboard deliberate --item "Laptop" --price 1200 --category tech --urgency medium
      finboard deliberate --personas frugal-frank,chad-alpha --sequential
      finboard inbox
      finboard history --list
    """


@main.command()
@click.option("--item", default=None, help="Item to purchase")
@click.option("--price", default=None, help="Price amount")
@click.option("--category", default=None, type=click.Choice(CATEGORIES), help="Purchase category")
@click.option("--urgency", default=None, type=click.Choice(list(URGENCIES)), help="Urgency level")
@click.option("--description", default=None, help="Short description of the item")
@click.option("--url", default=None, help="Product link")
@click.option("--context", "user_context", default=None, help="Your situation: budget, why you want it")
@click.option("--currency", default=None, help="Currency symbol or code (default: from config)")
@click.option("--personas", "personas_arg", default=None, help="Comma-separated persona ids, overrides config")
@click.option("--provider", "provider_name", default=None, help="Completion provider (default: from config)")
@click.option("--parallel/--sequential", default=None, help="Run members concurrently or one at a time")
@click.option("--yes", "-y", "skip_confirm", is_flag=True, help="Skip confirmation prompt")
@click.option("--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check")
@click.option("--no-save", is_flag=True, default=False, help="Do not write a markdown transcript")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def deliberate(
    item: str | None,
    price: str | None,
    category: str | None,
    urgency: str | None,
    description: str | None,
    url: str | None,
    user_context: str | None,
    currency: str | None,
    personas_arg: str | None,
    provider_name: str | None,
    parallel: bool | None,
    skip_confirm: bool,
    skip_health_check: bool,
    no_save: bool,
    verbose: bool,
) -> None:
    """Submit a purchase for board deliberation."""
    config = _load_app_config(verbose)

    _, personas = _select_personas(config, personas_arg)
    if not personas:
        console.print("[bold red]Error:[/bold red] No active personas. Check --personas or the persona catalog.")
        sys.exit(1)

    item = item or click.prompt("What do you want to buy?")
    price_value = _parse_price(price) if price else click.prompt("How much does it cost?", value_proc=_parse_price)
    category = category or click.prompt("What category is this?", type=click.Choice(CATEGORIES), default="other")
    urgency = urgency or click.prompt("How urgent is this purchase?", type=click.Choice(list(URGENCIES)), default="medium")
    if user_context is None and not skip_confirm:
        user_context = click.prompt("Any additional context? (optional)", default="", show_default=False)

    purchase = PurchaseRequest(
        id=str(uuid.uuid4()),
        item=item,
        price=price_value,
        currency=currency or config.defaults.currency,
        category=category,
        urgency=urgency,
        created_at=datetime.now(timezone.utc),
        description=description or None,
        url=url or None,
        context=user_context or None,
    )
    print_purchase(purchase, console)

    if not skip_confirm and not click.confirm("Submit to the board?", default=True):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    provider = _build_provider(config, provider_name or config.defaults.provider)
    if not skip_health_check:
        _check_provider(provider)

    run_parallel = config.defaults.parallel_execution if parallel is None else parallel
    board = _build_board(personas, provider, config, run_parallel)
    store = SessionStore(config.defaults.data_dir)
    store.get_or_create_session([p.id for p in personas])

    _deliberate_once(config, board, purchase, store, save=not no_save)


@main.command()
@click.option("--inbox-dir", "inbox_dir_override", default=None, help="Override inbox folder path (default: from config)")
@click.option("--personas", "personas_arg", default=None, help="Comma-separated persona ids, overrides config")
@click.option("--provider", "provider_name", default=None, help="Completion provider (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def inbox(
    inbox_dir_override: str | None,
    personas_arg: str | None,
    provider_name: str | None,
    skip_health_check: bool,
    verbose: bool,
) -> None:
    """Deliberate on every queued purchase file in the inbox folder."""
    config = _load_app_config(verbose)
    inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
    archive_dir = config.inbox.archive_dir
    ensure_dirs(inbox_dir, archive_dir)

    files = scan_inbox(inbox_dir)
    if not files:
        click.echo("No files in inbox.")
        return

    _, personas = _select_personas(config, personas_arg)
    if not personas:
        console.print("[bold red]Error:[/bold red] No active personas. Check --personas or the persona catalog.")
        sys.exit(1)

    provider = _build_provider(config, provider_name or config.defaults.provider)
    if not skip_health_check:
        _check_provider(provider)

    board = _build_board(personas, provider, config, config.defaults.parallel_execution)
    store = SessionStore(config.defaults.data_dir)
    store.get_or_create_session([p.id for p in personas])

    for file_path in files:
        try:
            purchase = purchase_from_file(file_path, default_currency=config.defaults.currency)
            print_purchase(purchase, console)
            deliberation = _deliberate_once(config, board, purchase, store, save=True)
            archived = archive_file(file_path, archive_dir)
            result = deliberation.voting_result
            outcome = result.final_decision if result.has_votes else "no verdict"
            click.echo(f"Processed: {file_path.name} -> {outcome} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


@main.command()
@click.option("--session", "session_id", default=None, help="View a specific session")
@click.option("--list", "list_sessions", is_flag=True, help="List all sessions")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def history(session_id: str | None, list_sessions: bool, verbose: bool) -> None:
    """View past deliberations and decisions."""
    config = _load_app_config(verbose)
    store = SessionStore(config.defaults.data_dir)

    if list_sessions:
        summaries = store.list_sessions()
        if not summaries:
            console.print("[yellow]No sessions found.[/yellow]")
            return
        for summary in summaries:
            console.print(f"[bold]{summary.name or 'Session ' + summary.id[:8]}[/bold]")
            console.print(f"  [dim]ID: {summary.id}[/dim]")
            console.print(f"  [dim]Created: {summary.created_at.strftime('%Y-%m-%d %H:%M')}[/dim]")
            console.print(f"  Deliberations: {summary.deliberation_count}")
            console.print(
                f"  Approved: [green]{summary.total_approved}[/green] | "
                f"Rejected: [red]{summary.total_rejected}[/red] | "
                f"No verdict: [yellow]{summary.total_no_verdict}[/yellow]"
            )
            console.print(f"  Total approved: [green]{summary.total_spent_approved:.2f}[/green]\n")
        return

    if session_id is None:
        summaries = store.list_sessions()
        session_id = summaries[0].id if summaries else None

    deliberations = store.history(session_id) if session_id else []
    if not deliberations:
        console.print("[yellow]No deliberations found.[/yellow]")
        console.print("[dim]Run `finboard deliberate` to submit your first purchase![/dim]")
        return
    print_history(deliberations, console)


@main.command()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def personas(verbose: bool) -> None:
    """List board member personas."""
    config = _load_app_config(verbose)
    registry = create_registry(
        config.defaults.personas_dir, config.defaults.data_dir, config.defaults.active_personas
    )
    everyone = all_personas(registry)

    console.print(Rule("[bold cyan]Board Members[/bold cyan]"))
    for persona in everyone:
        print_persona(persona, persona.id in registry.active, console)
        console.print()

    console.print(
        f"[dim]{len(everyone)} members ({len(registry.built_in)} built-in, "
        f"{len(registry.custom)} custom), {len(registry.active)} currently active[/dim]"
    )


if __name__ == "__main__":
    main()
