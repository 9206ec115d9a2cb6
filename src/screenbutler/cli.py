"""Command line interface for the ScreenButler project."""

from __future__ import annotations

import difflib
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from screenbutler.batch import (
    ApplyResult,
    BatchSuggestionPipeline,
    Decision,
    LedgerStateError,
    SuggestionLedger,
)
from screenbutler.classification import is_ambiguous
from screenbutler.config import (
    ButlerConfig,
    ConfigError,
    ConfigManager,
    SettingsCredentialStore,
    assign_dotted,
    flatten_for_env,
    parse_scalar,
    resolve_with_precedence,
)
from screenbutler.config.models import LoggingSettings
from screenbutler.ingestion import (
    DirectoryScanner,
    FileEntry,
    TypeDetector,
    select_ambiguous,
)
from screenbutler.naming import Analyzer
from screenbutler.organization import FileRenamer

console = Console()

LOGGER = logging.getLogger(__name__)

_HANDLER_NAMES = ("screenbutler-console", "screenbutler-file")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print ``message`` unless quiet or summary-only output suppresses it.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message)


def _resolve_output_modes(
    ctx: click.Context,
    config: ButlerConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine explicit flags with configured CLI defaults.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` settings.

    Raises:
        click.ClickException: If the combination is contradictory.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _configure_logging(settings: LoggingSettings) -> None:
    """Install console and optional rotating-file handlers on the root logger."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() in _HANDLER_NAMES:
            root.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.set_name("screenbutler-console")
    root.addHandler(console_handler)

    if settings.log_file:
        log_path = Path(settings.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        file_handler.set_name("screenbutler-file")
        root.addHandler(file_handler)

    root.setLevel(settings.level)


def _load_config(cli_overrides: dict[str, Any] | None = None) -> ButlerConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load(cli_overrides=cli_overrides)
    _configure_logging(config.logging)
    return config


def _build_analyzer(config: ButlerConfig) -> tuple[Analyzer | None, bool]:
    """Return the model analyzer and whether a credential is available.

    The DSPy-backed analyzer is imported only when a credential exists.
    """
    credentials = SettingsCredentialStore(config.llm)
    if not credentials.has_credential():
        LOGGER.info("No API key configured; using local fallback names")
        return None, False

    from screenbutler.naming.analyzer import ModelAnalyzer

    try:
        return ModelAnalyzer(config.llm, credentials), True
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc


def _entry_record(entry: FileEntry, detector: TypeDetector) -> dict[str, Any]:
    kind = detector.detect(entry)
    return {
        "name": entry.name,
        "path": entry.path.as_posix(),
        "is_directory": entry.is_directory,
        "size_bytes": entry.size_bytes,
        "kind": kind.value if kind else None,
        "ambiguous": kind is not None and is_ambiguous(entry.name),
    }


def _select_candidates(
    entries: Sequence[FileEntry],
    *,
    files: Sequence[str],
    ambiguous_only: bool,
    detector: TypeDetector,
) -> list[FileEntry]:
    if files:
        by_name = {entry.name: entry for entry in entries}
        missing = [name for name in files if name not in by_name]
        if missing:
            raise click.ClickException(f"File(s) not found in directory: {', '.join(missing)}")
        return [by_name[name] for name in dict.fromkeys(files)]
    if ambiguous_only:
        return select_ambiguous(entries, detector)
    return list(entries)


def _suggestion_table(ledger: SuggestionLedger) -> Table:
    table = Table(title="Rename suggestions")
    table.add_column("#", justify="right")
    table.add_column("Current name")
    table.add_column("Suggestion")
    table.add_column("Source")
    table.add_column("Decision")
    for index, item in enumerate(ledger.snapshot().items, start=1):
        suggestion = item.suggestion if item.suggestion is not None else "-"
        extension = item.entry.path.suffix
        table.add_row(
            str(index),
            item.entry.name,
            f"{suggestion}{extension}" if item.suggestion else suggestion,
            item.source or "-",
            item.decision.value if item.decision else "-",
        )
    return table


def _review_interactively(ledger: SuggestionLedger) -> None:
    """Ask for a decision on each analyzed entry."""
    for entry in ledger.candidates:
        suggestion = ledger.suggestion_for(entry)
        if suggestion is None:
            continue
        console.print(f"[bold]{entry.name}[/bold] -> [cyan]{suggestion}{entry.path.suffix}[/cyan]")
        choice = click.prompt(
            "Approve, reject, or edit",
            type=click.Choice(["a", "r", "e"]),
            default="a",
            show_choices=True,
        )
        if choice == "a":
            ledger.set_decision(entry, Decision.APPROVED)
        elif choice == "r":
            ledger.set_decision(entry, Decision.REJECTED)
        else:
            new_name = click.prompt("New name (without extension)", default=suggestion)
            ledger.edit_suggestion(entry, new_name)
            ledger.set_decision(entry, Decision.APPROVED)


def _apply_payload(result: ApplyResult) -> dict[str, Any]:
    return {
        "approved": result.approved_count,
        "succeeded": result.succeeded,
        "summary": result.summary,
        "failed": [
            {
                "path": failure.entry.path.as_posix(),
                "kind": failure.kind.value,
                "message": failure.message,
            }
            for failure in result.failed
        ],
        "renamed": [
            {"from": old.as_posix(), "to": new.as_posix()} for old, new in result.renamed.items()
        ],
    }


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="screenbutler")
def cli() -> None:
    """ScreenButler suggests descriptive names for screenshots, recordings and documents."""


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit verdicts as JSON.")
def check(names: tuple[str, ...], json_output: bool) -> None:
    """Report whether each of NAMES looks auto-generated."""
    verdicts = [{"name": name, "ambiguous": is_ambiguous(name)} for name in names]
    if json_output:
        console.print_json(data={"results": verdicts})
        return

    table = Table(show_header=True)
    table.add_column("Name")
    table.add_column("Ambiguous")
    for verdict in verdicts:
        flag = "[yellow]yes[/yellow]" if verdict["ambiguous"] else "[green]no[/green]"
        table.add_row(str(verdict["name"]), flag)
    console.print(table)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--all", "show_all", is_flag=True, help="List descriptive names too.")
@click.option("--json", "json_output", is_flag=True, help="Emit the listing as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(
    ctx: click.Context,
    path: str,
    show_all: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """List files under PATH and flag the ones that need better names.

    Args:
        ctx: Click context used for parameter source inspection.
        path: Directory to list.
        show_all: Whether to include entries that are not rename candidates.
        json_output: If True, emit JSON instead of a table.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
    """

    try:
        config = _load_config()
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )

        root = Path(path).expanduser().resolve()
        scanner = DirectoryScanner(include_hidden=config.processing.include_hidden)
        detector = TypeDetector()
        records = [_entry_record(entry, detector) for entry in scanner.list_directory(root)]
        ambiguous_count = sum(1 for record in records if record["ambiguous"])
        shown = records if show_all else [record for record in records if record["ambiguous"]]

        if json_output:
            console.print_json(
                data={
                    "context": {"root": root.as_posix(), "show_all": show_all},
                    "entries": shown,
                    "counts": {"total": len(records), "ambiguous": ambiguous_count},
                }
            )
            return

        if shown:
            table = Table(title=f"Files in {root}")
            table.add_column("Name")
            table.add_column("Type")
            table.add_column("Size", justify="right")
            table.add_column("Needs rename")
            for record in shown:
                kind = "folder" if record["is_directory"] else (record["kind"] or "-")
                flag = "[yellow]yes[/yellow]" if record["ambiguous"] else ""
                table.add_row(record["name"], kind, str(record["size_bytes"]), flag)
            _emit_message(table, mode="detail", quiet=quiet_enabled, summary_only=summary_only)

        _emit_message(
            f"[green]Scan summary for {root}: entries={len(records)}, "
            f"ambiguous={ambiguous_count}.[/green]",
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except OSError as exc:
        _handle_cli_error(
            f"Unable to list {path}: {exc}",
            code="filesystem_error",
            json_output=json_output,
            original=exc,
        )


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option(
    "--file",
    "files",
    multiple=True,
    help="Rename only this file (repeatable). Disables smart selection.",
)
@click.option("--all", "all_files", is_flag=True, help="Include files with descriptive names.")
@click.option("--yes", "approve_all", is_flag=True, help="Approve every suggestion.")
@click.option("--dry-run", is_flag=True, help="Review suggestions without renaming anything.")
@click.option("--workers", type=click.IntRange(min=1), help="Override processing.max_workers.")
@click.option("--json", "json_output", is_flag=True, help="Emit suggestions and results as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def rename(
    ctx: click.Context,
    path: str,
    files: tuple[str, ...],
    all_files: bool,
    approve_all: bool,
    dry_run: bool,
    workers: int | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Suggest and apply better names for files under PATH.

    Args:
        ctx: Click context used for parameter source inspection.
        path: Directory containing the files to rename.
        files: Explicit file names to process instead of smart selection.
        all_files: Whether to skip the ambiguity filter.
        approve_all: Approve every suggestion without prompting.
        dry_run: If True, stop after review.
        workers: Optional concurrency override.
        json_output: If True, emit JSON describing suggestions and results.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.

    Raises:
        click.ClickException: If configuration, analysis setup, or apply fails.
    """

    try:
        cli_overrides: dict[str, Any] = {}
        if workers is not None:
            cli_overrides["processing.max_workers"] = workers
        if all_files:
            cli_overrides["processing.ambiguous_only"] = False
        config = _load_config(cli_overrides)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        if json_output and not (approve_all or dry_run):
            raise click.ClickException("--json requires --yes or --dry-run.")

        root = Path(path).expanduser().resolve()
        detector = TypeDetector()
        scanner = DirectoryScanner(include_hidden=config.processing.include_hidden)
        candidates = _select_candidates(
            scanner.list_directory(root),
            files=files,
            ambiguous_only=config.processing.ambiguous_only,
            detector=detector,
        )

        analyzer, has_credential = _build_analyzer(config)
        pipeline = BatchSuggestionPipeline(
            FileRenamer(),
            analyzer,
            has_credential=has_credential,
            detector=detector,
            max_workers=config.processing.max_workers,
            fallback_prefix=config.rename.fallback_prefix,
        )

        if json_output or quiet_enabled:
            ledger = pipeline.run(candidates)
        else:
            with console.status(f"Analyzing {len(candidates)} file(s)..."):
                ledger = pipeline.run(candidates)

        json_payload: dict[str, Any] = {
            "context": {
                "root": root.as_posix(),
                "dry_run": dry_run,
                "model": has_credential,
            },
            "skipped": [entry.path.as_posix() for entry in ledger.skipped],
        }

        if not ledger.candidates:
            if json_output:
                json_payload["snapshot"] = ledger.snapshot().model_dump(mode="json")
                json_payload["result"] = None
                console.print_json(data=json_payload)
                return
            _emit_message(
                "[yellow]No files need renaming.[/yellow]",
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            return

        if approve_all:
            ledger.approve_all()

        if not json_output:
            _emit_message(
                _suggestion_table(ledger),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            if not approve_all:
                _review_interactively(ledger)

        approved = len(ledger.entries_with(Decision.APPROVED))
        if dry_run or approved == 0:
            message = (
                f"Dry run: {approved} approved suggestion(s) not applied."
                if dry_run
                else "No suggestions approved; nothing renamed."
            )
            if json_output:
                json_payload["snapshot"] = ledger.snapshot().model_dump(mode="json")
                json_payload["result"] = None
                console.print_json(data=json_payload)
            else:
                _emit_message(
                    f"[yellow]{message}[/yellow]",
                    mode="summary",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            return

        result = pipeline.apply_approved()

        if json_output:
            json_payload["snapshot"] = ledger.snapshot().model_dump(mode="json")
            json_payload["result"] = _apply_payload(result)
            console.print_json(data=json_payload)
            return

        if result.failed:
            _emit_message(
                "[red]Rename failures:[/red]",
                mode="error",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            for failure in result.failed:
                _emit_message(
                    f"  - {failure.entry.name} ({failure.kind.value}): {failure.message}",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
        _emit_message(
            f"[green]{result.summary}[/green]",
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except LedgerStateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except click.Abort:
        raise
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while renaming files: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


@cli.group()
def config() -> None:
    """Manage ScreenButler configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.option("--env-vars", is_flag=True, help="Show the settings as environment variables.")
def config_view(no_env: bool, env_vars: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.
        env_vars: If True, print the equivalent SCREENBUTLER__* variables instead of YAML.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if env_vars:
        lines = [f"{key}={value}" for key, value in flatten_for_env(config).items()]
        console.print(Syntax("\n".join(lines), "bash", word_wrap=True))
        return

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        file_data = manager.load_file_overrides()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'llm.vision_model'.")

    try:
        parsed_value = parse_scalar(segments, value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        assign_dotted(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ButlerConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The header timestamp always changes; only report real edits.
    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if "Last updated" not in line
    ]

    changed = [
        line for line in diff if line[:1] in "+-" and not line.startswith(("+++", "---"))
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=ButlerConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
