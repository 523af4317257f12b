"""CLI entry point for mono-release."""

from __future__ import annotations

import logging
import traceback
from pathlib import Path

import click

from mono_release.config import NoChangesAction
from mono_release.errors import GitError, ReleaseError
from mono_release.pipeline import plan_release, run_release
from mono_release.shell import fatal


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def _report(exc: Exception) -> None:
    """Print a release failure as summary plus itemised causes, then exit 1."""
    if isinstance(exc, GitError):
        lines = [
            "Could not release due to a Git error",
            "There was an error while accessing the Git repository. "
            "The error returned from git was:",
            exc.render(),
            "Stack trace:",
            traceback.format_exc(),
        ]
    elif isinstance(exc, ReleaseError):
        lines = [exc.render()]
    else:
        lines = [
            f"Could not release: {exc}",
            "Stack trace:",
            traceback.format_exc(),
        ]
    fatal("\n".join(lines))


root_option = click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Workspace root (the root of the git working tree).",
)
build_number_option = click.option(
    "--build-number",
    type=click.IntRange(min=0),
    default=None,
    help="Build number for this release. Auto-increments from tags when omitted.",
)
force_release_option = click.option(
    "--force-release",
    "modules_to_force_release",
    multiple=True,
    metavar="MODULE",
    help="Release this module even if it has not changed (repeatable).",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Debug logging.")


@click.group()
@click.version_option(package_name="mono-release")
def cli() -> None:
    """Release every changed module of a multi-module repository at once."""


@cli.command()
@root_option
@build_number_option
@force_release_option
@click.option(
    "--modules-to-release",
    multiple=True,
    metavar="MODULE",
    help="Only tag and build these modules (repeatable).",
)
@click.option(
    "--push/--no-push",
    "push_tags",
    default=None,
    help="Push tags to the remote as they are created.",
)
@click.option(
    "--revert/--no-revert",
    "revert_changes",
    default=None,
    help="Revert the release versions after a successful build.",
)
@click.option(
    "--skip-tests", is_flag=True, default=None, help="Skip tests in the build."
)
@click.option("--remote", default=None, help="Remote name or URL for tags.")
@click.option(
    "--no-changes-action",
    type=click.Choice([a.value for a in NoChangesAction]),
    default=None,
    help="What to do when no module changed since its last release.",
)
@verbose_option
def release(
    root: Path,
    build_number: int | None,
    modules_to_force_release: tuple[str, ...],
    modules_to_release: tuple[str, ...],
    push_tags: bool | None,
    revert_changes: bool | None,
    skip_tests: bool | None,
    remote: str | None,
    no_changes_action: str | None,
    verbose: bool,
) -> None:
    """Rewrite versions, tag, build, and revert."""
    _configure_logging(verbose)
    overrides = {
        "push_tags": push_tags,
        "revert_changes": revert_changes,
        "skip_tests": skip_tests or None,
        "remote": remote,
        "no_changes_action": NoChangesAction(no_changes_action)
        if no_changes_action
        else None,
    }
    try:
        run_release(
            root,
            build_number=build_number,
            modules_to_force_release=list(modules_to_force_release),
            modules_to_release=list(modules_to_release),
            overrides=overrides,
        )
    except Exception as exc:
        _report(exc)


@cli.command()
@root_option
@build_number_option
@force_release_option
@verbose_option
def plan(
    root: Path,
    build_number: int | None,
    modules_to_force_release: tuple[str, ...],
    verbose: bool,
) -> None:
    """Show what a release would do, without changing anything."""
    _configure_logging(verbose)
    try:
        reactor = plan_release(
            root,
            build_number=build_number,
            modules_to_force_release=list(modules_to_force_release),
        )
    except Exception as exc:
        _report(exc)
        return

    if reactor is None:
        return
    click.echo()
    for module in reactor.modules_in_build_order:
        if module.will_be_released():
            click.echo(
                f"  {module.artifact} {module.info.version} → {module.new_version}"
                f" (tag {module.tag_name})"
            )
        else:
            click.echo(
                f"  {module.artifact} {module.info.version} → "
                f"{module.equivalent_version} (unchanged)"
            )
