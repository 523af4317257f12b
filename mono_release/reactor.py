"""Module discovery and release planning.

The Reactor is the ordered set of modules taking part in one release
attempt. Building it:
1. Discover all modules from the workspace member globs
2. Sort them so parents and dependencies come first
3. Name each module's release version from the build number
4. Decide which modules changed since their last release; unchanged
   modules reuse the previously released version instead
"""

from __future__ import annotations

import glob
import logging
from collections.abc import Iterable
from pathlib import Path

from .config import NoChangesAction, ReleaseConfig
from .errors import UnresolvedSnapshotDependencyError, ValidationError
from .graph import topo_sort
from .models import ModuleInfo, ReleasableModule, VersionName
from .repo import LocalGitRepo
from .shell import step
from .toml import DESCRIPTOR_NAME, load_toml, read_module_info
from .versions import (
    build_numbers_from_tags,
    business_version,
    is_valid_tag_name,
    next_build_number,
    release_version,
)

logger = logging.getLogger(__name__)


class Reactor:
    """Modules of one release attempt, in build order."""

    def __init__(self, modules_in_build_order: list[ReleasableModule]) -> None:
        self.modules_in_build_order = modules_in_build_order

    def find(self, group: str, artifact: str, version: str | None) -> ReleasableModule:
        """Find the module with this identity and declared version.

        Raises:
            UnresolvedSnapshotDependencyError: If no module in the release
                set matches.
        """
        for module in self.modules_in_build_order:
            info = module.info
            if info.group == group and info.artifact == artifact:
                if info.version == version:
                    return module
        raise UnresolvedSnapshotDependencyError(group, artifact, version)


def discover_modules(root: Path, members: Iterable[str]) -> dict[str, ModuleInfo]:
    """Scan the workspace and read every module descriptor.

    Expands the member globs, reads module.toml from each matching directory
    and records which of its parent/dependency references are internal.

    Returns:
        Map of artifact id to ModuleInfo.

    Raises:
        ValidationError: If no modules are found or an artifact id repeats.
    """
    step("Discovering workspace modules")

    root = root.resolve()
    module_dirs: list[Path] = []
    for pattern in members:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match).resolve()
            if (p / DESCRIPTOR_NAME).exists() and p not in module_dirs:
                module_dirs.append(p)

    if not module_dirs:
        raise ValidationError(f"No {DESCRIPTOR_NAME} found matching workspace members")

    modules: dict[str, ModuleInfo] = {}
    for d in module_dirs:
        rel = d.relative_to(root).as_posix() or "."
        info = read_module_info(load_toml(d / DESCRIPTOR_NAME), rel)
        if info.artifact in modules:
            summary = f"Artifact id {info.artifact} is declared by more than one module"
            raise ValidationError(
                summary, [summary, f" * {modules[info.artifact].path}", f" * {rel}"]
            )
        modules[info.artifact] = info

    # Second pass: parent and dependency references to workspace modules
    labels = {info.label: info.artifact for info in modules.values()}
    for info in modules.values():
        refs = [info.parent] if info.parent else []
        refs.extend(info.dependencies)
        for ref in refs:
            artifact = labels.get(ref.label)
            if artifact and artifact != info.artifact and artifact not in info.deps:
                info.deps.append(artifact)

    return modules


def _nested_module_paths(info: ModuleInfo, modules: dict[str, ModuleInfo]) -> list[str]:
    """Paths of other modules living inside this module's directory."""
    prefix = "" if info.path == "." else info.path.rstrip("/") + "/"
    return [
        other.path.rstrip("/") + "/"
        for other in modules.values()
        if other is not info and other.path != "." and other.path.startswith(prefix)
    ]


def has_changed_since(
    repo: LocalGitRepo,
    info: ModuleInfo,
    modules: dict[str, ModuleInfo],
    tag: str,
) -> bool:
    """True if any file of this module (excluding nested modules) changed."""
    nested = _nested_module_paths(info, modules)
    for path in repo.changed_files_since(tag, info.path):
        if not any(path.startswith(prefix) for prefix in nested):
            return True
    return False


def build_reactor(
    root: Path,
    repo: LocalGitRepo,
    config: ReleaseConfig,
    *,
    build_number: int | None = None,
    modules_to_force_release: list[str] | None = None,
) -> Reactor | None:
    """Plan the release of every workspace module.

    Args:
        root: Workspace root.
        repo: Repository handle used for tag lookups and diffs.
        config: Release settings (members, no-changes action).
        build_number: Build number for every module; when None, each module
            gets one more than its highest previously released build number.
        modules_to_force_release: Modules released even when unchanged.

    Returns:
        The Reactor, or None if nothing changed and the configured
        no-changes action is release-none.
    """
    modules = discover_modules(root, config.members)
    order = topo_sort(modules)
    forced = modules_to_force_release or []

    step("Finding previous releases")
    remote_tags = repo.all_remote_tags()
    releasable: list[ReleasableModule] = []
    by_artifact: dict[str, ReleasableModule] = {}

    for artifact in order:
        info = modules[artifact]
        business = business_version(info.version)
        local_tags = set(repo.local_tags(f"{artifact}-{business}.*"))
        tag_names = local_tags | remote_tags
        previous = build_numbers_from_tags(tag_names, artifact, business)
        logger.debug("%s %s: previous build numbers %s", artifact, business, previous)

        number = next_build_number(previous) if build_number is None else build_number
        version = VersionName(
            business_version=business,
            build_number=number,
            release_version=release_version(info.version, number),
        )
        if not is_valid_tag_name(f"{artifact}-{version.release_version}"):
            summary = (
                f"Cannot release {artifact} with version {version.release_version} "
                "as it is not a valid Git tag name"
            )
            raise ValidationError(summary)

        module = ReleasableModule(info=info, version=version)
        equivalent = None
        if previous and not module.is_one_of(forced):
            last_version = f"{business}.{previous[-1]}"
            last_tag = f"{artifact}-{last_version}"
            dependency_released = any(
                by_artifact[dep].will_be_released() for dep in info.deps
            )
            if dependency_released:
                print(f"  {artifact}: dependency released, will be released")
            elif last_tag not in local_tags:
                print(f"  {artifact}: {last_tag} not found locally, will be released")
            elif has_changed_since(repo, info, modules, last_tag):
                print(f"  {artifact}: changed since {last_tag}")
            else:
                equivalent = last_version
                print(f"  {artifact}: unchanged, reusing {last_version}")
        else:
            reason = "forced" if previous else "no previous release"
            print(f"  {artifact}: {reason}")

        if equivalent is not None:
            module = ReleasableModule(
                info=info, version=version, equivalent_version=equivalent
            )
        releasable.append(module)
        by_artifact[artifact] = module

    if not any(m.will_be_released() for m in releasable):
        action = config.no_changes_action
        if action == NoChangesAction.RELEASE_NONE:
            print("\nNo changes have been detected in any modules so will not release.")
            return None
        if action == NoChangesAction.FAIL:
            summary = "No module changes have been detected"
            raise ValidationError(
                summary,
                [
                    summary,
                    "Use --force-release to release modules anyway, or set "
                    "no-changes-action to release-all.",
                ],
            )
        print("  No changes detected: releasing all modules")
        releasable = [m.create_releasable_version() for m in releasable]

    return Reactor(releasable)
