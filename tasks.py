"""Invoke tasks for the ScreenButler development workflow.

Every task shells out to `uv` so the virtual environment, test run, and lint
checks use the same resolver as the lock file.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence

from invoke import Collection, Context, task

SOURCE_DIRS = ("src", "tests")


def _uv(ctx: Context, *args: str, pty: bool = True) -> None:
    """Run ``uv`` with ``args`` after echoing the quoted command."""
    ctx.run(shlex.join(("uv", *args)), echo=True, pty=pty)


@task(help={"dev": "Install the dev extra (pytest, invoke, ruff, mypy)."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment with pyproject.toml."""
    _uv(ctx, "sync", *(("--extra", "dev") if dev else ()))


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite."""
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, *args)


@task(help={"fix": "Apply Ruff auto-fixes.", "check_format": "Run `ruff format --check` first."})
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff lint (and optionally format) checks."""
    if check_format:
        _uv(ctx, "run", "ruff", "format", "--check", *SOURCE_DIRS)
    extra: Sequence[str] = ("--fix",) if fix else ()
    _uv(ctx, "run", "ruff", "check", *SOURCE_DIRS, *extra)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package sources."""
    _uv(ctx, "run", "mypy", "src")


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks, and tests in CI order."""
    lint(ctx, check_format=True)
    mypy(ctx)
    tests(ctx)


namespace = Collection(sync, tests, lint, mypy, ci)
