"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying module.toml
descriptors. This keeps the release commit down to the changed version
strings, which makes it readable and diff-friendly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit

from .errors import ValidationError
from .models import Coordinates, ModuleInfo

DESCRIPTOR_NAME = "module.toml"
TOOL_TABLE = "mono-release"


def load_toml(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a TOML file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_toml(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, fully replacing the previous content."""
    path.write_text(tomlkit.dumps(doc))


def get_tool_config(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Extract the [tool.mono-release] table from a root pyproject.toml.

    Raises:
        ValidationError: If the table is missing.
    """
    table = doc.get("tool", {}).get(TOOL_TABLE)
    if table is None:
        summary = f"No [tool.{TOOL_TABLE}] table defined in root pyproject.toml"
        raise ValidationError(
            summary,
            [
                summary,
                "mono-release needs to know where the modules are. Example:",
                f"  [tool.{TOOL_TABLE}]",
                '  members = ["modules/*"]',
            ],
        )
    return table.unwrap()


def _coordinates(table: Any) -> Coordinates:
    version = table.get("version")
    return Coordinates(
        group=str(table.get("group", "")),
        artifact=str(table["artifact"]),
        version=None if version is None else str(version),
    )


def read_module_info(doc: tomlkit.TOMLDocument, path: str) -> ModuleInfo:
    """Build a ModuleInfo snapshot from a parsed module.toml.

    Args:
        doc: Parsed descriptor.
        path: Module directory relative to the workspace root.

    Raises:
        ValidationError: If [module] lacks an artifact or version.
    """
    module = doc.get("module", {})
    if "artifact" not in module or "version" not in module:
        raise ValidationError(
            f"{path}/{DESCRIPTOR_NAME} must declare module.artifact and module.version"
        )

    parent = doc.get("parent")
    properties = doc.get("properties", {})
    return ModuleInfo(
        path=path,
        group=str(module.get("group", "")),
        artifact=str(module["artifact"]),
        version=str(module["version"]),
        parent=_coordinates(parent) if parent is not None else None,
        dependencies=[_coordinates(d) for d in doc.get("dependencies", [])],
        plugins=[_coordinates(p) for p in doc.get("plugins", [])],
        properties={str(k): str(v) for k, v in properties.items()},
    )
