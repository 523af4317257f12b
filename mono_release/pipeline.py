"""Release pipeline: check → rewrite → tag → build → revert.

This module orchestrates one release attempt:
1. Verify the working tree is clean
2. Plan the release (build order, versions, unchanged modules)
3. Rewrite every module descriptor; on any unresolved reference, revert
   all descriptors and report every problem at once
4. Validate tag names against local and remote tags
5. Commit the rewritten descriptors and tag (and push) each released module
6. Run the external build
7. Revert the release commit, strictly after a successful build and
   best-effort when anything failed

Tags are created before the build runs, and a failed build keeps its tags:
the version number counts as used once the build has started.
"""

from __future__ import annotations

import logging
import traceback
from pathlib import Path

from .builder import modules_to_build, run_build
from .config import ReleaseConfig, load_config
from .errors import RevertError, ValidationError
from .models import UpdateResult
from .reactor import Reactor, build_reactor
from .repo import LocalGitRepo
from .shell import step
from .tags import figure_out_tag_names_and_raise_if_exists, tag_and_push
from .updater import update_versions
from .versions import SnapshotPredicate, is_snapshot

logger = logging.getLogger(__name__)

REVERT_FAILED = (
    "Could not revert changes - working directory is no longer clean. "
    "Please revert changes manually"
)


def revert_if_update_failed(result: UpdateResult, repo: LocalGitRepo) -> None:
    """Restore every rewritten descriptor and raise if the rewrite failed.

    Raises:
        ValidationError: Listing every unresolved reference, or wrapping the
            unexpected error that stopped the rewrite.
    """
    if result.success:
        return

    print("  Going to revert changes because there was an error.")
    if not repo.revert_changes(result.changed_files):
        logger.warning(REVERT_FAILED)

    if result.unexpected_error is not None:
        error = result.unexpected_error
        summary = "Unexpected exception while setting the release versions"
        raise ValidationError(
            summary,
            [
                summary,
                f"{type(error).__name__}: {error}",
                "Stack trace:",
                "".join(traceback.format_exception(error)),
            ],
        ) from error

    summary = "Cannot release with references to snapshot dependencies"
    raise ValidationError(
        summary,
        [
            summary,
            "The following dependency errors were found:",
            *(f" * {error}" for error in result.module_errors),
        ],
    )


def revert_changes(
    repo: LocalGitRepo, changed_files: list[Path], *, strict: bool
) -> None:
    """Undo the attempt's changes, committed or not.

    Uses the commit revert once a release commit exists, the working-tree
    revert otherwise. Does nothing if the repository was already reverted.

    Raises:
        RevertError: If strict and some file could not be restored.
    """
    if repo.release_commit is not None:
        ok = repo.revert_commit(changed_files)
    else:
        ok = repo.revert_changes(changed_files)
    if ok:
        return
    if strict:
        raise RevertError(REVERT_FAILED)
    logger.warning(REVERT_FAILED)


def release_reactor(
    root: Path,
    repo: LocalGitRepo,
    reactor: Reactor,
    config: ReleaseConfig,
    *,
    modules_to_release: list[str] | None = None,
    snapshot: SnapshotPredicate = is_snapshot,
) -> None:
    """Rewrite, tag, build and revert for an already planned reactor."""
    result = update_versions(root, reactor, snapshot)
    revert_if_update_failed(result, repo)
    changed_files = result.changed_files

    build_succeeded = False
    try:
        tags = figure_out_tag_names_and_raise_if_exists(
            reactor.modules_in_build_order, repo, modules_to_release
        )
        tag_and_push(repo, tags, config.push_tags)

        run_build(
            root,
            config.goals,
            modules_to_build(reactor.modules_in_build_order, modules_to_release),
            skip_tests=config.skip_tests,
        )
        build_succeeded = True
        if config.revert_changes:
            step("Reverting release versions")
            revert_changes(repo, changed_files, strict=True)
    finally:
        if not build_succeeded or config.revert_changes:
            revert_changes(repo, changed_files, strict=False)


def run_release(
    root: Path,
    *,
    build_number: int | None = None,
    modules_to_force_release: list[str] | None = None,
    modules_to_release: list[str] | None = None,
    overrides: dict[str, object] | None = None,
    snapshot: SnapshotPredicate = is_snapshot,
) -> None:
    """Execute a full release attempt.

    Args:
        root: Workspace root; must be the root of a git working tree.
        build_number: Build number for every module (auto-computed when None).
        modules_to_force_release: Modules released even when unchanged.
        modules_to_release: Restrict tagging and building to these modules.
        overrides: Settings that take precedence over [tool.mono-release].
        snapshot: Predicate deciding whether a version is floating.
    """
    config = load_config(root).with_overrides(**(overrides or {}))

    repo = LocalGitRepo.from_dir(root, config.remote)
    repo.error_if_not_clean()
    if config.push_tags and repo.remote_name() is None:
        summary = "Cannot push release tags because the repository has no remote"
        raise ValidationError(
            summary,
            [
                summary,
                "Add a remote, set remote in the configuration, or use --no-push.",
            ],
        )

    reactor = build_reactor(
        repo.root,
        repo,
        config,
        build_number=build_number,
        modules_to_force_release=modules_to_force_release,
    )
    if reactor is None:
        return

    release_reactor(
        repo.root,
        repo,
        reactor,
        config,
        modules_to_release=modules_to_release,
        snapshot=snapshot,
    )

    print(f"\n{'=' * 60}\nDone!\n{'=' * 60}")


def plan_release(
    root: Path,
    *,
    build_number: int | None = None,
    modules_to_force_release: list[str] | None = None,
) -> Reactor | None:
    """Plan a release without touching the working tree.

    Returns:
        The planned reactor, or None when there is nothing to release.
    """
    config = load_config(root)
    repo = LocalGitRepo.from_dir(root, config.remote)
    return build_reactor(
        repo.root,
        repo,
        config,
        build_number=build_number,
        modules_to_force_release=modules_to_force_release,
    )
