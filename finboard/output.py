"""Rich console output and markdown file save for board deliberations."""

import logging
import re
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from finboard.board import BoardEvent, EventKind
from finboard.models import BoardDeliberation, Persona, PersonaTraits, PurchaseRequest
from finboard.session_store import split_by_verdict

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _excerpt(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_price(purchase: PurchaseRequest) -> str:
    return f"{purchase.currency}{purchase.price}"


def print_event(event: BoardEvent, out: Console = console) -> None:
    """Board listener: one console line per progress event."""
    name = event.member_name or event.member_id
    if event.kind is EventKind.MEMBER_STARTED:
        out.print(f"[blue]┌─ [bold]{name}[/bold] is reviewing the purchase...[/blue]")
    elif event.kind is EventKind.RESEARCH_COMPLETE:
        out.print(f"[dim]│  {name}: research complete[/dim]")
    elif event.kind is EventKind.REASONING_COMPLETE:
        out.print(f"[dim]│  {name}: initial opinion {event.payload.initial_opinion}[/dim]")
    elif event.kind is EventKind.CRITIQUE_COMPLETE:
        out.print(f"[dim]│  {name}: self-critique complete[/dim]")
    elif event.kind is EventKind.VOTE_CAST:
        vote = event.payload
        color = "green" if vote.decision == "approve" else "red"
        out.print(
            f"│  {name} votes [bold {color}]{vote.decision.upper()}[/bold {color}] "
            f"({vote.confidence}% confident)"
        )
        out.print(f'[dim]└  "{_excerpt(vote.reasoning)}"[/dim]')
    elif event.kind is EventKind.MEMBER_ERRORED:
        out.print(f"[red]│  ✗ {name} dropped out: {event.payload}[/red]")


def print_verdict(deliberation: BoardDeliberation, out: Console = console) -> None:
    """Print the tally, verdict and each vote ordered by confidence."""
    result = deliberation.voting_result
    out.print(Rule("[bold cyan]Final Verdict[/bold cyan]"))

    if not result.has_votes:
        out.print(
            "[bold yellow]No board member completed the deliberation; "
            "the verdict is not meaningful.[/bold yellow]"
        )
        return

    out.print(f"  [green]Approve:[/green] {result.approve_count}")
    out.print(f"  [red]Reject:[/red]  {result.reject_count}")
    color = "green" if result.final_decision == "approve" else "red"
    verdict = "APPROVED" if result.final_decision == "approve" else "REJECTED"
    out.print(f"\n  The board has [bold {color}]{verdict}[/bold {color}] this purchase!")
    if result.unanimous:
        out.print("  [yellow](Unanimous decision)[/yellow]")

    table = Table(title="Individual Votes", show_lines=True)
    table.add_column("Member", style="bold")
    table.add_column("Vote")
    table.add_column("Confidence", justify="right")
    table.add_column("Reasoning")
    for vote in sorted(result.votes, key=lambda v: v.confidence, reverse=True):
        vote_color = "green" if vote.decision == "approve" else "red"
        table.add_row(
            vote.member_name,
            f"[{vote_color}]{vote.decision}[/{vote_color}]",
            f"{vote.confidence}%",
            vote.reasoning,
        )
    out.print(table)
    out.print(Text(result.summary, style="italic"))
    out.print(
        Text(
            f"Processing time: {deliberation.total_duration_sec:.1f}s | "
            f"Purchase: {deliberation.purchase.item} - {format_price(deliberation.purchase)}",
            style="dim",
        )
    )


def print_history(deliberations: list[BoardDeliberation], out: Console = console) -> None:
    out.print(Rule("[bold cyan]Deliberation History[/bold cyan]"))
    for d in reversed(deliberations):
        result = d.voting_result
        out.print(f"[bold]{d.purchase.item}[/bold] - {format_price(d.purchase)}")
        if result.has_votes:
            color = "green" if result.final_decision == "approve" else "red"
            verdict = "APPROVED" if result.final_decision == "approve" else "REJECTED"
            out.print(f"   [{color}]{verdict}[/{color}] ({result.approve_count}-{result.reject_count})")
        else:
            out.print("   [yellow]NO VERDICT[/yellow] (no member completed)")
        out.print(f"   [dim]{d.completed_at.strftime('%Y-%m-%d %H:%M')}[/dim]\n")

    approved, rejected, undecided = split_by_verdict(deliberations)
    total = sum((d.purchase.price for d in approved), Decimal("0"))
    out.print(Rule(style="cyan"))
    out.print(f"Total deliberations: {len(deliberations)}")
    out.print(
        f"Approved: [green]{len(approved)}[/green] | "
        f"Rejected: [red]{len(rejected)}[/red] | "
        f"No verdict: [yellow]{len(undecided)}[/yellow]"
    )
    out.print(f"Total approved spending: [green]{total:.2f}[/green]")


def print_persona(persona: Persona, active: bool, out: Console = console) -> None:
    traits: PersonaTraits = persona.traits
    marker = "[green]●[/green]" if active else "[dim]○[/dim]"
    out.print(f"{marker} [bold]{persona.name}[/bold] - [italic]{persona.title}[/italic]")
    out.print(f"   [dim]{persona.archetype}[/dim]")
    out.print(f"   [dim]Risk: {traits.risk_tolerance} | Style: {traits.investment_style}[/dim]")
    if traits.catchphrases:
        out.print(f'   [yellow]"{traits.catchphrases[0]}"[/yellow]')


def print_purchase(purchase: PurchaseRequest, out: Console = console) -> None:
    body = "\n".join(
        line for line in (
            f"Item: [bold]{purchase.item}[/bold]",
            f"Price: [green]{format_price(purchase)}[/green]",
            f"Category: {purchase.category}",
            f"Urgency: {purchase.urgency}",
            f"Context: {purchase.context}" if purchase.context else "",
        ) if line
    )
    out.print(Panel(body, title="Purchase Summary", border_style="cyan"))


def save_to_file(deliberation: BoardDeliberation, output_dir: Path) -> Path:
    """Save the full deliberation transcript as a markdown file.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    purchase = deliberation.purchase
    result = deliberation.voting_result
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(purchase.item)}.md"
    if result.has_votes:
        verdict = f"{result.final_decision.upper()} ({result.approve_count}-{result.reject_count})"
    else:
        verdict = "none (no member completed)"

    lines: list[str] = [
        f"# Board Deliberation: {purchase.item}",
        "",
        f"**Date:** {deliberation.completed_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Price:** {format_price(purchase)}",
        f"**Category:** {purchase.category}",
        f"**Urgency:** {purchase.urgency}",
        f"**Verdict:** {verdict}",
        f"**Duration:** {deliberation.total_duration_sec:.1f}s",
        "",
    ]
    if purchase.context:
        lines += [f"> {purchase.context}", ""]
    lines += ["---", ""]

    for member in deliberation.member_results:
        vote = member.final_vote
        lines += [
            f"## {member.member_name}",
            "",
            "### Research",
            "",
            *[f"- {finding}" for finding in member.research.findings],
            "",
            f"**Price analysis:** {member.research.price_analysis}",
            "",
            f"**Alternatives:** {'; '.join(member.research.alternatives_found)}",
            "",
            f"### Reasoning (initial opinion: {member.reasoning.initial_opinion})",
            "",
            *[f"- {argument}" for argument in member.reasoning.arguments],
            "",
            f"**Concerns:** {'; '.join(member.reasoning.concerns)}",
            "",
            "### Self-Critique",
            "",
            *[f"- {point}" for point in member.critique.counter_arguments],
            "",
            f"### Vote: {vote.decision.upper()} ({vote.confidence}%)",
            "",
            vote.reasoning,
            "",
        ]
        if vote.catchphrase:
            lines += [f'*"{vote.catchphrase}"*', ""]
        lines.append(f"*Processing time: {member.processing_time_sec:.2f}s*")
        lines.append("")

    lines += ["## Summary", "", result.summary, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Deliberation saved to: %s", filepath)
    return filepath
