"""Descriptor rewriting.

Sets each module's release version in its module.toml and points every
snapshot reference to a sibling module at the version that sibling is
released (or was previously released) at. References that cannot be
resolved are collected as error lines instead of raised, so a single pass
reports every broken reference in the workspace.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import tomlkit

from .errors import UnresolvedSnapshotDependencyError
from .models import Coordinates, ReleasableModule, UpdateResult
from .reactor import Reactor
from .shell import step
from .toml import DESCRIPTOR_NAME, load_toml, save_toml
from .versions import SnapshotPredicate, is_snapshot

logger = logging.getLogger(__name__)

# This tool's own plugin coordinates. A snapshot reference to it is a
# self-reference, never a dependency problem.
RELEASE_PLUGIN = Coordinates(group="io.github.mono-release", artifact="mono-release")


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def resolve_version(version: str | None, properties: dict[str, str]) -> str | None:
    """Resolve a ${name} version expression against the module's properties.

    Unknown properties resolve to the expression itself, which is never a
    snapshot version.

    Examples:
        resolve_version("${lib.version}", {"lib.version": "1.0"}) → "1.0"
        resolve_version("${missing}", {}) → "${missing}"
        resolve_version("2.0", {}) → "2.0"
    """
    if version is not None and version.startswith("${"):
        return properties.get(version[2:].rstrip("}"), version)
    return version


def is_release_plugin(group: str | None, artifact: str | None) -> bool:
    return group == RELEASE_PLUGIN.group and artifact == RELEASE_PLUGIN.artifact


def alter_descriptor(
    doc: tomlkit.TOMLDocument,
    module: ReleasableModule,
    reactor: Reactor,
    snapshot: SnapshotPredicate = is_snapshot,
) -> list[str]:
    """Rewrite a parsed descriptor in place for the release.

    Sets [module].version to the module's release version, then rewrites
    snapshot parent and dependency references to modules in the reactor.
    Snapshot plugin references are reported, never rewritten.

    Args:
        doc: Parsed module.toml (modified in place).
        module: The module the descriptor belongs to.
        reactor: Every module taking part in the release.
        snapshot: Predicate deciding whether a version is floating.

    Returns:
        One line per reference that could not be resolved.
    """
    doc["module"]["version"] = module.new_version

    errors: list[str] = []
    searching_from = module.artifact

    parent = doc.get("parent")
    if parent is not None and snapshot(_text(parent.get("version"))):
        try:
            found = reactor.find(
                str(parent.get("group", "")),
                str(parent["artifact"]),
                _text(parent.get("version")),
            )
            parent["version"] = found.version_to_depend_on()
            logger.debug(
                " Parent %s rewritten to version %s",
                found.artifact,
                found.version_to_depend_on(),
            )
        except UnresolvedSnapshotDependencyError as e:
            errors.append(f"The parent of {searching_from} is {e.artifact} {e.version}")

    properties = {str(k): str(v) for k, v in doc.get("properties", {}).items()}

    for dependency in doc.get("dependencies", []):
        version = _text(dependency.get("version"))
        if snapshot(resolve_version(version, properties)):
            try:
                found = reactor.find(
                    str(dependency.get("group", "")),
                    str(dependency["artifact"]),
                    resolve_version(version, properties),
                )
                dependency["version"] = found.version_to_depend_on()
                logger.debug(
                    " Dependency on %s rewritten to version %s",
                    found.artifact,
                    found.version_to_depend_on(),
                )
            except UnresolvedSnapshotDependencyError as e:
                errors.append(
                    f"{searching_from} references dependency {e.artifact} {e.version}"
                )
        else:
            logger.debug(
                " Dependency on %s kept at version %s",
                dependency.get("artifact"),
                version,
            )

    for plugin in doc.get("plugins", []):
        version = _text(plugin.get("version"))
        if snapshot(resolve_version(version, properties)):
            group, artifact = _text(plugin.get("group")), _text(plugin.get("artifact"))
            if not is_release_plugin(group, artifact):
                errors.append(
                    f"{searching_from} references plugin {artifact} {version}"
                )

    return errors


def rewrite_module(
    root: Path,
    module: ReleasableModule,
    reactor: Reactor,
    snapshot: SnapshotPredicate = is_snapshot,
) -> tuple[tomlkit.TOMLDocument, Path]:
    """Load and alter one module's descriptor without writing it.

    Records the module's errors and its descriptor as the changed file.

    Returns:
        The altered document and the path it must be written to.
    """
    descriptor = (root / module.relative_path_to_module / DESCRIPTOR_NAME).resolve()
    doc = load_toml(descriptor)
    module.errors = alter_descriptor(doc, module, reactor, snapshot)
    module.changed_file = descriptor
    return doc, descriptor


def update_versions(
    root: Path,
    reactor: Reactor,
    snapshot: SnapshotPredicate = is_snapshot,
) -> UpdateResult:
    """Rewrite every module descriptor in build order.

    A module is counted as altered before its file is written, so a failed
    write is still rolled back. Any unexpected exception stops the pass and
    is carried in the result rather than raised.
    """
    step("Setting release versions")

    altered: list[ReleasableModule] = []
    for module in reactor.modules_in_build_order:
        try:
            if module.will_be_released():
                print(f"  Going to release {module.artifact} {module.new_version}")
            doc, descriptor = rewrite_module(root, module, reactor, snapshot)
            altered.append(module)
            save_toml(descriptor, doc)
        except Exception as exc:
            logger.debug(
                "Unexpected error while rewriting %s", module.artifact, exc_info=True
            )
            return UpdateResult(altered_modules=altered, unexpected_error=exc)
    return UpdateResult(altered_modules=altered)
