"""
Scripted demo runner for the sparkloop agent.
Runs a handful of posts through the real classify -> gate -> act loop,
fast-forwards the clock and shows how delayed engagement is scored and
folded back into learned patterns.
No API keys needed: the platform and the completion model are mocks.

Usage:
    python3 -m demo.run_demo              # Normal pace
    python3 -m demo.run_demo --fast       # No pauses
    python3 -m demo.run_demo --pace 0.5   # Custom pacing
    python3 -m demo.run_demo --live       # Real completion API (needs ANTHROPIC_API_KEY)
"""

import argparse
import asyncio
import json
import random
import time
from datetime import datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sparkloop.clock import utcnow
from sparkloop.config.settings import AgentSettings, get_settings
from sparkloop.engine import EXECUTED, AgentEngine, StimulusResult
from sparkloop.llm.client import ClaudeClient, MockLLMClient
from sparkloop.models import EngagementMetrics, OutcomeStatus, Stimulus, StimulusType
from sparkloop.social.client import MockPlatformClient
from sparkloop.storage import AgentStore, InMemoryBackend


# =============================================================================
# SCRIPT
# =============================================================================

STIMULI = [
    Stimulus("1001", "I wonder why transformers generalize so well", "u_ada", StimulusType.TIMELINE, "ada"),
    Stimulus(
        "1002",
        "Finally realized the pattern: emergence in neural network systems makes sense now",
        "u_grace", StimulusType.MENTION, "grace",
    ),
    Stimulus("1003", "This is a scam, you're wrong and I hate it", "u_troll", StimulusType.MENTION, "troll"),
    Stimulus(
        "1004",
        "lol imagine if the universe is technically a simulation",
        "u_linus", StimulusType.TIMELINE, "linus",
    ),
    Stimulus("1001", "I wonder why transformers generalize so well", "u_ada", StimulusType.TIMELINE, "ada"),
]

# Engagement observed a day later, by action type
DAY_LATER_METRICS = {
    "quote": EngagementMetrics(likes=14, replies=1, retweets=3, impressions=2400),
    "reply": EngagementMetrics(likes=10, replies=3, retweets=2, impressions=800),
    "original_post": EngagementMetrics(likes=4, replies=0, retweets=1, impressions=600),
}

APPROVED_PRINCIPLES = {
    "approved": True,
    "truth_gate": "pass",
    "value_gate": "pass",
    "mirror_gate": "pass",
    "wonder_gate": "pass",
    "message": "Genuine interest, adds something",
}

CLEAN_GUARDRAILS = {
    "passes_guardrails": True,
    "truth": "pass",
    "value": "pass",
    "sensitivity": "pass",
    "authenticity": "pass",
}

COMPOSED = {
    "text": "Generalization might be less about the architecture and more about what the data "
            "quietly repeats. Which regularity do you think carries the most weight?",
}


class DemoClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _mock_llm() -> MockLLMClient:
    llm = MockLLMClient()
    llm.route("PRINCIPLE REVIEW", json.dumps(APPROVED_PRINCIPLES))
    llm.route("GUARDRAIL REVIEW", json.dumps(CLEAN_GUARDRAILS))
    llm.route("COMPOSE POST", json.dumps(COMPOSED))
    return llm


# =============================================================================
# RENDERING
# =============================================================================

STATUS_STYLE = {
    "executed": "green",
    "rejected": "yellow",
    "failed": "red",
}


def _gauge(value: float, width: int = 20) -> str:
    fill = int(max(0.0, min(1.0, value)) * width)
    return "[" + "=" * fill + "." * (width - fill) + "]"


def render_result(console: Console, result: StimulusResult):
    color = STATUS_STYLE.get(result.status, "dim")
    lines = [
        f"  [{color} bold]{result.status.upper()}[/{color} bold]"
        f"  [dim]{result.decision.decision_type.value}[/dim]",
        f"  state    {result.context.state.value}"
        f"  {_gauge(result.context.intensity)}  {result.context.intensity:.2f}",
    ]
    if result.spark is not None:
        lines.append(f"  spark    {_gauge(result.spark / 10)}  {result.spark:.1f}")
    if result.decision.content:
        lines.append(f"  text     [italic]{result.decision.content}[/italic]")
    if result.status != EXECUTED:
        lines.append(f"  reason   [dim]{result.reason}[/dim]")
    if result.outcome_id:
        lines.append(f"  outcome  [dim]{result.outcome_id} queued[/dim]")
    console.print(Panel("\n".join(lines), border_style=color, width=84))


async def render_outcomes(console: Console, engine: AgentEngine):
    table = Table(title="Outcomes After 25 Hours",
                  caption="Reply-count weighs most for conversational actions")
    table.add_column("Action", style="bold", width=14)
    table.add_column("State", width=12)
    table.add_column("Metrics", width=30)
    table.add_column("Score", justify="right", width=18)

    completed = await engine.store.outcomes_by_status(OutcomeStatus.COMPLETED)
    for outcome in sorted(completed, key=lambda o: o.created_at):
        metrics = outcome.latest_metrics
        summary = (
            f"{metrics.likes}L {metrics.replies}R {metrics.retweets}RT {metrics.impressions}imp"
            if metrics else "-"
        )
        table.add_row(
            outcome.action_type.value,
            outcome.state.value,
            summary,
            f"{_gauge(outcome.outcome_score, 10)} {outcome.outcome_score:.2f}",
        )
    console.print(table)


def render_patterns(console: Console, engine: AgentEngine):
    table = Table(title="Learned Patterns")
    table.add_column("State:Decision", style="bold", width=28)
    table.add_column("Count", justify="right", width=6)
    table.add_column("Avg", justify="right", width=6)
    table.add_column("Success", justify="right", width=8)
    table.add_column("Continue", justify="center", width=9)

    for pattern in sorted(engine.patterns.patterns.values(), key=lambda p: -p.avg_score):
        table.add_row(
            pattern.key,
            str(pattern.count),
            f"{pattern.avg_score:.2f}",
            f"{pattern.success_rate:.0%}",
            "yes" if pattern.should_continue else "no",
        )
    console.print(table)


# =============================================================================
# MAIN
# =============================================================================

async def run(console: Console, delay: float, live: bool):
    clock = DemoClock(utcnow())
    platform = MockPlatformClient()
    if live:
        llm_settings = get_settings().llm
        llm = ClaudeClient(api_key=llm_settings.api_key, model=llm_settings.model)
    else:
        llm = _mock_llm()

    engine = AgentEngine.build(
        platform=platform,
        llm=llm,
        store=AgentStore(InMemoryBackend()),
        settings=AgentSettings(scout_enabled=False, original_post_probability=0.0),
        clock=clock,
        rng=random.Random(7),
    )
    await engine.prepare()

    try:
        console.rule("[bold] Cycle 1: the timeline [/bold]")
        report = await engine.run_cycle(list(STIMULI))
        for result in report.results:
            if delay:
                time.sleep(delay)
            who = f"@{result.stimulus.author_username}" if result.stimulus else "(self)"
            console.print(f"\n  [bold blue]{who}:[/bold blue] {result.stimulus.text if result.stimulus else ''}")
            render_result(console, result)
        console.print(f"\n  [dim]duplicates skipped: {report.duplicates}[/dim]")

        console.print()
        console.rule("[bold] A quiet moment: an original thought [/bold]")
        result = await engine.compose_original(engine.state.current)
        engine.state.commit(result.context)
        render_result(console, result)

        # Engagement arrives while the agent is doing other things
        for posted in await engine.store.outcomes_by_status(OutcomeStatus.PENDING):
            if posted.artifact_id:
                platform.metrics[posted.artifact_id] = DAY_LATER_METRICS.get(posted.action_type.value)

        console.print()
        console.rule("[bold] Early poll [/bold]")
        early = await engine.poll_outcomes()
        console.print(f"  [dim]nothing due yet: {early.to_dict()}[/dim]")

        clock.advance(timedelta(hours=25))
        console.print()
        console.rule("[bold] 25 hours later [/bold]")
        drained = await engine.poll_outcomes()
        console.print(f"  [dim]{drained.to_dict()}[/dim]\n")
        await render_outcomes(console, engine)
        render_patterns(console, engine)

        stats = await engine.scheduler.stats()
        console.print(Panel(
            f"[bold]Demo Complete[/bold]\n\n"
            f"Stimuli scanned: {report.scanned}\n"
            f"Actions executed: {len(platform.posted)}\n"
            f"Outcomes scored: {stats.completed_recent}\n"
            f"Average score: {stats.average_score or 0:.2f}\n"
            f"Ending state: {engine.state.current.state.value}\n\n"
            f"[dim]Tests: python3 -m pytest tests/ -v\n"
            f"Live:  python3 -m demo.run_demo --live[/dim]",
            width=84,
        ))
    finally:
        await llm.close()


def main():
    parser = argparse.ArgumentParser(description="sparkloop Demo Runner")
    parser.add_argument("--fast", action="store_true", help="No pauses between stimuli")
    parser.add_argument("--pace", type=float, default=1.0, help="Seconds between stimuli")
    parser.add_argument("--live", action="store_true", help="Use the real completion API")
    args = parser.parse_args()

    console = Console(width=90)
    delay = 0.0 if args.fast else args.pace

    # Banner
    console.print(Panel(
        "[bold]sparkloop - a social agent that learns from delayed engagement[/bold]\n\n"
        "[dim]classify -> triage -> principles -> compose -> safety -> act\n"
        "Every executed action is scored a day later, and the score\n"
        "feeds back into what sparks the next engagement.[/dim]",
        width=84,
    ))

    if args.live:
        console.print("[yellow]Live mode: using real completion API calls[/yellow]")
        console.print("[yellow]Requires ANTHROPIC_API_KEY in .env[/yellow]\n")

    asyncio.run(run(console, delay, args.live))


if __name__ == "__main__":
    main()
