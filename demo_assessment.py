"""
demo_assessment.py – Terminal walkthrough of the Career Readiness assessment

Run:
    python demo_assessment.py            # answer interactively
    python demo_assessment.py --auto     # scripted answers, no prompts

Report generation uses Azure OpenAI when AZURE_OPENAI_ENDPOINT and
AZURE_OPENAI_API_KEY are set in .env; otherwise the mock tier is used.
See .env.example for format.
"""

from __future__ import annotations

import asyncio
import sys
import uuid
from pathlib import Path

# ── make src/ importable without installing the package ──────────────────────
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from career_readiness.config import configure_logging, get_settings
from career_readiness.flow import AssessmentFlow
from career_readiness.guardrails import USER_MESSAGES
from career_readiness.models import FlowStage, Question, Report, ReportSource, SaveStatus
from career_readiness.staged_progress import StageUpdate

console = Console()

SAVE_BADGE = {
    SaveStatus.IDLE:    "[dim]–[/dim]",
    SaveStatus.SAVING:  f"[yellow]{USER_MESSAGES['saving']}[/yellow]",
    SaveStatus.SAVED:   "[green]saved[/green]",
    SaveStatus.UNSAVED: f"[bold red]{USER_MESSAGES['unsaved']}[/bold red]",
}


# ─── Display helpers ─────────────────────────────────────────────────────────

def _bar(score: float, width: int = 20) -> str:
    filled = round(score / 100 * width)
    return "█" * filled + "░" * (width - filled) + f" {score:5.1f}"


def _ask(question: Question, auto: bool) -> set[str]:
    console.print(f"\n[bold]{question.prompt}[/bold]")
    for opt in question.options:
        console.print(f"  [cyan]{opt.value}[/cyan]  {opt.label}")
    if auto:
        picked = {question.options[-2].value}
        console.print(f"[dim]→ {', '.join(sorted(picked))}[/dim]")
        return picked
    hint = " (comma-separated)" if question.multi_select else ""
    raw = Prompt.ask(f"Your answer{hint}", default="")
    return {v.strip() for v in raw.split(",") if v.strip()}


def _on_stage(update: StageUpdate) -> None:
    suffix = " [dim](still working…)[/dim]" if update.holding else ""
    console.print(f"  [magenta]{update.index + 1}/{update.total}[/magenta] {update.label}{suffix}")


def show_report(report: Report) -> None:
    console.print()
    console.rule("[bold magenta]Your Career Readiness Report[/bold magenta]")
    if report.source == ReportSource.FALLBACK:
        console.print(f"[yellow]{USER_MESSAGES['report_fallback']}[/yellow]")

    summary = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
    summary.add_column("Key",   style="bold cyan", no_wrap=True)
    summary.add_column("Value", style="white")
    summary.add_row("Overall score",    f"[bold]{report.overall_score:.0f}/100[/bold]")
    summary.add_row("Archetype",        report.archetype)
    summary.add_row("",                 f"[italic]{report.archetype_description}[/italic]")
    summary.add_row("Current level",    report.inferred_level or "–")
    summary.add_row("Market readiness", report.market_readiness)
    summary.add_row("Source",           report.source.value)
    console.print(Panel(summary, title="[bold]Summary[/bold]", border_style="magenta"))

    dims = Table(box=box.SIMPLE_HEAD, header_style="bold white on dark_violet", padding=(0, 1))
    dims.add_column("Dimension", min_width=22)
    dims.add_column("Score",     min_width=28)
    for dim, score in report.dimension_scores.items():
        style = "green" if dim in report.strengths else "red" if dim in report.gaps else "white"
        dims.add_row(f"[{style}]{dim.replace('_', ' ')}[/{style}]", _bar(score))
    console.print(Panel(dims, title="[bold]Dimension Scores[/bold]", border_style="blue"))

    console.print(Panel("\n".join(f"• {line}" for line in report.insights),
                        title="[bold]Insights[/bold]", border_style="cyan"))
    console.print(Panel("\n".join(f"{i}. {line}" for i, line in enumerate(report.growth_plan, 1)),
                        title="[bold]90-Day Growth Plan[/bold]", border_style="green"))


# ─── Main ────────────────────────────────────────────────────────────────────

async def run(auto: bool) -> None:
    settings = get_settings()
    session_id = "demo-" + uuid.uuid4().hex[:8]
    flow = await AssessmentFlow.open(
        session_id,
        settings=settings,
        on_status=lambda s: console.print(f"[dim]autosave: {SAVE_BADGE[s]}[/dim]"),
    )
    for service, status in settings.status_summary().items():
        console.print(f"[dim]{service}: {status}[/dim]")

    try:
        while flow.state.stage != FlowStage.GENERATING:
            st = flow.state
            if st.stage == FlowStage.MODULE_INTRO:
                module = flow.config.modules[st.module_index]
                console.print(Panel(f"[bold]{module.name}[/bold]\n[dim]{module.description}[/dim]",
                                    border_style="magenta", expand=False))
                flow.begin_module()
            elif st.stage == FlowStage.IN_QUESTION:
                result = flow.answer(_ask(flow.current_question(), auto))
                if not result.accepted:
                    console.print(f"[bold red]{result.message}[/bold red]")
                else:
                    console.print(f"[dim]Progress {flow.progress()}%[/dim]")
            elif st.stage == FlowStage.MODULE_COMPLETE:
                console.print(f"[green]✓ Module complete[/green]  [dim]{flow.progress()}%[/dim]")
                await flow.proceed()
            elif st.stage == FlowStage.AWAITING_EMAIL_GATE:
                email = "demo@example.com" if auto else Prompt.ask("Enter your email to see the rest")
                opt_in = True if auto else Confirm.ask("Subscribe to the newsletter?", default=True)
                gate = await flow.submit_email(email, subscribe_newsletter=opt_in)
                if not gate.accepted:
                    console.print(f"[bold red]{gate.message}[/bold red]")

        console.print("\n[bold]Generating your report…[/bold]")
        report = await flow.finish(on_stage=_on_stage)
        if report is not None:
            show_report(report)
    finally:
        await flow.exit()


def main() -> None:
    configure_logging()
    console.print()
    console.print(Panel(
        "[bold]Career Readiness Assessment[/bold]\n"
        "[dim]Modules  •  Email checkpoint  •  Personalised report[/dim]",
        style="on dark_violet",
        expand=False,
    ))
    try:
        asyncio.run(run(auto="--auto" in sys.argv[1:]))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)
    except Exception:
        console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
