"""tom CLI: session consolidation, recall and storage maintenance."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

import click

from tom import __version__
from tom.core.config import load_config
from tom.core.engine import TomEngine
from tom.core.gitignore import ensure_gitignore_entry
from tom.memory.capture import record_interaction

SCOPE_CHOICE = click.Choice(["global", "project"])


def _engine() -> TomEngine:
    return TomEngine(load_config())


def _format_time(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


@click.group()
@click.version_option(version=__version__, prog_name="tom")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr.")
def main(verbose: bool) -> None:
    """tom: preference-learning memory for AI coding agents."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
            stream=sys.stderr,
        )


@main.command()
def status() -> None:
    """Show configuration, storage usage and top preferences."""
    try:
        with _engine() as engine:
            report = engine.status()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    cfg = report.config
    click.echo("Configuration")
    click.echo(f"  Enabled: {cfg['enabled']}")
    click.echo(f"  Consult threshold: {cfg['consultThreshold']}")
    click.echo(
        f"  Models: memoryUpdate={cfg['models']['memoryUpdate']}, "
        f"consultation={cfg['models']['consultation']}"
    )
    click.echo(f"  Preference half-life: {cfg['preferenceDecayDays']} days")
    click.echo(f"  Max sessions retained: {cfg['maxSessionsRetained']}")

    storage = report.storage
    click.echo("Storage")
    click.echo(f"  Session logs: {storage.tier1_session_count}")
    click.echo(f"  Session models: {storage.tier2_model_count}")
    click.echo(f"  User model size: {storage.tier3_size_bytes} bytes")

    if not report.has_model:
        click.echo("No user model yet.")
        return

    click.echo("Top preferences")
    for pref in report.top_preferences:
        click.echo(
            f"  {pref.category}.{pref.key} = {pref.value} "
            f"(confidence {pref.confidence:.2f}, sessions {pref.session_count})"
        )
    if report.interaction_style_summary:
        click.echo(f"Interaction style: {report.interaction_style_summary}")
    if report.coding_style_summary:
        click.echo(f"Coding style: {report.coding_style_summary}")


@main.command()
@click.argument("query_text")
@click.option("--limit", "-k", default=None, type=int, help="Max results.")
@click.option("--scope", "-s", default="global", type=SCOPE_CHOICE, help="Storage scope.")
def search(query_text: str, limit: int | None, scope: str) -> None:
    """Search all memory tiers with BM25."""
    try:
        with _engine() as engine:
            results = engine.search(query_text, k=limit, scope=scope)  # type: ignore[arg-type]
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not results:
        click.echo("No results found.")
        return

    for i, r in enumerate(results, 1):
        click.echo(f"[{i}] {r.id}  score={r.score:.4f}")


@main.command()
@click.argument("session_id", required=False, envvar="CLAUDE_SESSION_ID")
@click.option("--scope", "-s", default="global", type=SCOPE_CHOICE, help="Storage scope.")
@click.option("--force", is_flag=True, help="Run even when tom is disabled.")
def analyze(session_id: str | None, scope: str, force: bool) -> None:
    """Consolidate a finished session into the user model.

    SESSION_ID defaults to $CLAUDE_SESSION_ID.
    """
    config = load_config()
    if not config.enabled and not force:
        click.echo("tom is disabled; skipping analysis.")
        return
    if not session_id:
        click.echo("Error: no session id given and CLAUDE_SESSION_ID is unset.", err=True)
        sys.exit(1)

    try:
        with TomEngine(config) as engine:
            result = engine.analyze_completed_session(session_id, scope)  # type: ignore[arg-type]
    except Exception as e:
        click.echo(f"tom analyze error: {e}", err=True)
        sys.exit(1)

    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(1)

    model = result.session_model
    click.echo(f"Analyzed session {result.session_id}")
    if model is not None:
        click.echo(f"  Intent: {model.intent}")
        click.echo(f"  Patterns: {', '.join(model.interaction_patterns) or '-'}")
        click.echo(f"  Preferences: {', '.join(model.coding_preferences) or '-'}")
    click.echo("  User model updated, index rebuilt.")


@main.command()
@click.option("--tool-name", envvar="TOOL_NAME", default="", help="Invoked tool.")
@click.option("--tool-input", envvar="TOOL_INPUT", default="{}", help="Tool input as JSON.")
@click.option("--tool-output", envvar="TOOL_OUTPUT", default="", help="Raw tool output.")
@click.option("--session-id", envvar="CLAUDE_SESSION_ID", default=None, help="Session id.")
@click.option("--scope", "-s", default="global", type=SCOPE_CHOICE, help="Storage scope.")
def capture(
    tool_name: str, tool_input: str, tool_output: str, session_id: str | None, scope: str
) -> None:
    """Record one tool call in the session log.

    Meant to run as a post-tool-use hook; reads $TOOL_NAME, $TOOL_INPUT,
    $TOOL_OUTPUT and $CLAUDE_SESSION_ID. Does nothing when tom is disabled.
    """
    config = load_config()
    if not config.enabled or not tool_name:
        return

    try:
        with TomEngine(config) as engine:
            record_interaction(
                engine.store,
                session_id or f"pid-{os.getpid()}",
                tool_name,
                tool_input,
                tool_output,
                scope,  # type: ignore[arg-type]
            )
    except Exception as e:
        click.echo(f"tom capture error: {e}", err=True)
        sys.exit(1)


@main.command()
def inspect() -> None:
    """Show every stored session and the full user model."""
    try:
        with _engine() as engine:
            report = engine.inspect()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Stored sessions")
    if not report.sessions:
        click.echo("  No sessions stored.")
    else:
        click.echo(
            f"  {report.total_session_count} session(s) stored "
            f"(max: {report.max_sessions_retained})"
        )
        if report.prune_count:
            click.echo(
                f"  Warning: {report.prune_count} session(s) will be pruned "
                "on next session analysis."
            )
        for entry in report.sessions:
            marker = " [WILL BE PRUNED]" if entry.will_be_pruned else ""
            click.echo(
                f"  - {entry.session_id} ({_format_time(entry.started_at)}, {entry.scope}): "
                f"{entry.intent or '(no analysis)'}{marker}"
            )

    click.echo("User model")
    if report.user_model is None:
        click.echo("  No user model found. tom will begin learning after your first session.")
        return

    for category, prefs in report.preferences_by_category().items():
        click.echo(f"  {category}")
        for pref in prefs:
            click.echo(
                f"    - {pref.key}: {pref.value} ({pref.confidence * 100:.0f}% confidence, "
                f"{pref.session_count} sessions, last updated {_format_time(pref.last_updated)})"
            )
    if report.user_model.interaction_style_summary:
        click.echo(f"  Interaction style: {report.user_model.interaction_style_summary}")
    if report.user_model.coding_style_summary:
        click.echo(f"  Coding style: {report.user_model.coding_style_summary}")


@main.command()
@click.option("--scope", "-s", default="global", type=SCOPE_CHOICE, help="Storage scope.")
def index(scope: str) -> None:
    """Rebuild the BM25 index from all stored tiers."""
    try:
        with _engine() as engine:
            built = engine.rebuild_index(scope)  # type: ignore[arg-type]
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Indexed {built.document_count} documents ({len(built.idf)} terms).")


@main.command()
@click.argument("session_id")
def forget(session_id: str) -> None:
    """Remove a session and rebuild the user model without it."""
    try:
        with _engine() as engine:
            result = engine.forget_session(session_id)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.tier1_deleted and not result.tier2_deleted:
        click.echo(f'Session "{session_id}" not found in any scope.')
        return

    click.echo(f'Session "{session_id}" has been removed:')
    click.echo(f"  Session log: {'deleted' if result.tier1_deleted else 'not found'}")
    click.echo(f"  Session model: {'deleted' if result.tier2_deleted else 'not found'}")
    click.echo(
        f"  User model: {'rebuilt without this session' if result.tier3_rebuilt else 'unchanged'}"
    )


@main.command()
@click.option("--scope", "-s", default="global", type=SCOPE_CHOICE, help="Storage scope.")
def prune(scope: str) -> None:
    """Delete the oldest sessions beyond the retention limit."""
    try:
        with _engine() as engine:
            result = engine.prune(scope)  # type: ignore[arg-type]
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not result.pruned_session_ids:
        click.echo(f"Nothing to prune ({result.sessions_before_prune} sessions).")
        return
    click.echo(
        f"Pruned {len(result.pruned_session_ids)} sessions "
        f"({result.sessions_before_prune} -> {result.sessions_after_prune})."
    )


@main.command()
@click.option(
    "--output", "-o", default=None, type=click.Path(dir_okay=False), help="Write to a file."
)
def export(output: str | None) -> None:
    """Export all stored memory as JSON."""
    try:
        with _engine() as engine:
            data = engine.export_data()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    payload = json.dumps(data, indent=2)
    if output is None:
        click.echo(payload)
        return
    Path(output).write_text(payload, encoding="utf-8")
    click.echo(f"Exported to {output}")


@main.command()
@click.option("--yes", is_flag=True, help="Confirm deletion without prompting.")
def reset(yes: bool) -> None:
    """Delete all stored memory in both scopes (settings are kept)."""
    if not yes:
        click.confirm("Delete all tom memory?", abort=True)
    try:
        with _engine() as engine:
            deleted = engine.reset()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    total_files = sum(d.file_count for d in deleted.values())
    total_bytes = sum(d.total_bytes for d in deleted.values())
    click.echo(f"Deleted {total_files} files ({total_bytes} bytes).")


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
def setup(path: str) -> None:
    """Keep project-scope memory out of git."""
    result = ensure_gitignore_entry(Path(path))
    click.echo(result.describe())


if __name__ == "__main__":
    main()
