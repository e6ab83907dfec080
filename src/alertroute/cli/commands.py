"""CLI commands: validate manifests, show rule status, route event files."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List

import typer

from alertroute.cli._errors import handle_error, manifest_errors
from alertroute.conditions import READY, get_condition
from alertroute.config import EngineConfig
from alertroute.engine import AlertEngine, Decision, RuleOutcome
from alertroute.manifests import iter_events, load_resources
from alertroute.observability import ObservabilityConfig, configure, flush
from alertroute.types import AlertRule
from alertroute.validation import AlertValidationError, validate_spec


@manifest_errors
def validate(
    files: List[Path] = typer.Argument(..., help="Alert manifest files (YAML or JSON)"),
) -> None:
    """Admission-check every Alert in the given manifests."""
    rejected = 0
    checked = 0
    for path in files:
        alerts, _ = load_resources(path)
        for rule in alerts:
            checked += 1
            try:
                validate_spec(rule.spec, rule.key)
            except AlertValidationError as err:
                rejected += 1
                typer.echo(f"REJECTED {rule.key}")
                for problem in err.problems:
                    typer.echo(f"  - {problem}")
            else:
                typer.echo(f"ok       {rule.key}")

    if checked == 0:
        handle_error("no Alert resources found")
    if rejected:
        typer.echo(f"{rejected} of {checked} alerts rejected.", err=True)
        raise typer.Exit(1)


async def _build_engine(
    alert_files: list[Path], provider_files: list[Path], config: EngineConfig
) -> AlertEngine:
    rules: list[AlertRule] = []
    engine = AlertEngine(config=config)
    for path in [*provider_files, *alert_files]:
        alerts, providers = load_resources(path)
        rules.extend(alerts)
        for spec in providers:
            try:
                engine.providers.register(spec.namespace, spec.name, spec.build())
            except ValueError as err:
                handle_error(str(err))
    for rule in rules:
        await engine.apply(rule)
    return engine


def _print_status(engine: AlertEngine) -> None:
    typer.echo(f"{'Alert':<35} {'Ready':<8} {'Reason':<18} Message")
    typer.echo("-" * 90)
    for rule in engine.rules():
        cond = get_condition(rule, READY)
        if cond is None:
            typer.echo(f"{rule.key:<35} {'Unknown':<8}")
            continue
        typer.echo(f"{rule.key:<35} {cond.status.value:<8} {cond.reason:<18} {cond.message}")


def _setup_logging(log_level: str) -> None:
    configure(ObservabilityConfig(log_level=log_level))


@manifest_errors
def status(
    alerts: List[Path] = typer.Option(..., "--alerts", "-a", help="Alert manifest file(s)"),
    providers: List[Path] = typer.Option([], "--providers", "-p", help="Provider manifest file(s)"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Engine config YAML"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr"),
) -> None:
    """Admit the declared rules and show each rule's Ready condition."""
    _setup_logging(log_level)
    try:
        config = EngineConfig.load(config_file)
    except ValueError as err:
        handle_error(str(err))
    async def _run() -> AlertEngine:
        engine = await _build_engine(alerts, providers, config)
        await flush()
        return engine

    _print_status(asyncio.run(_run()))


def _format_outcome(source: str, outcome: RuleOutcome) -> str:
    line = f"{source} -> {outcome.rule}: {outcome.decision.value}"
    if outcome.dispatched:
        line += f" (attempts={outcome.attempts})"
    if outcome.reason:
        line += f" [{outcome.reason}]"
    return line


@manifest_errors
def route(
    alerts: List[Path] = typer.Option(..., "--alerts", "-a", help="Alert manifest file(s)"),
    events: Path = typer.Option(..., "--events", "-e", help="Events file (JSONL, JSON or YAML)"),
    providers: List[Path] = typer.Option([], "--providers", "-p", help="Provider manifest file(s)"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Engine config YAML"),
    show_unmatched: bool = typer.Option(
        False, "--show-unmatched", help="Also print rules that did not match"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print outcomes as JSON lines"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr"),
) -> None:
    """Route every event through the declared rules and print the outcomes."""
    _setup_logging(log_level)
    try:
        config = EngineConfig.load(config_file)
    except ValueError as err:
        handle_error(str(err))

    async def _run() -> tuple[AlertEngine, list, list[list[RuleOutcome]]]:
        engine = await _build_engine(alerts, providers, config)
        event_list = list(iter_events(events))
        results = await engine.run(event_list)
        await flush()
        return engine, event_list, results

    engine, event_list, results = asyncio.run(_run())

    for event, outcomes in zip(event_list, results):
        source = str(event.involved_object)
        for outcome in outcomes:
            if not show_unmatched and outcome.decision == Decision.NOT_MATCHED:
                continue
            if as_json:
                typer.echo(
                    json.dumps(
                        {
                            "event": source,
                            "rule": outcome.rule,
                            "decision": outcome.decision.value,
                            "attempts": outcome.attempts,
                            "reason": outcome.reason,
                        }
                    )
                )
            else:
                typer.echo(_format_outcome(source, outcome))

    if not as_json:
        typer.echo("")
        _print_status(engine)
