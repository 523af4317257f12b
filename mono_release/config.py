"""Release configuration.

Settings live in the [tool.mono-release] table of the workspace's root
pyproject.toml. Command-line options override them for a single run.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError
from .toml import TOOL_TABLE, get_tool_config, load_toml


class NoChangesAction(str, Enum):
    """What to do when no module changed since its last release."""

    RELEASE_ALL = "release-all"
    RELEASE_NONE = "release-none"
    FAIL = "fail"


class ReleaseConfig(BaseModel):
    """Workspace release settings.

    Attributes:
        members: Glob patterns (relative to the root) of module directories.
        goals: Build command; the module path is appended for each module.
        remote: Remote name or URL to check and push tags against. When
                unset, "origin" (or the only configured remote) is used.
        push_tags: Push each release tag as soon as it is created.
        revert_changes: Restore the descriptors after a successful build.
        skip_tests: Ask the build to skip tests (SKIP_TESTS=true).
        no_changes_action: Behaviour when no module changed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    members: list[str] = Field(min_length=1)
    goals: list[str] = Field(
        default_factory=lambda: ["uv", "build", "--out-dir", "dist/"], min_length=1
    )
    remote: str | None = None
    push_tags: bool = Field(default=True, alias="push-tags")
    revert_changes: bool = Field(default=True, alias="revert-changes")
    skip_tests: bool = Field(default=False, alias="skip-tests")
    no_changes_action: NoChangesAction = Field(
        default=NoChangesAction.RELEASE_ALL, alias="no-changes-action"
    )

    def with_overrides(self, **overrides: Any) -> ReleaseConfig:
        """Return a copy with every non-None override applied."""
        return self.model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )


def load_config(root: Path) -> ReleaseConfig:
    """Load [tool.mono-release] from root/pyproject.toml.

    Raises:
        ValidationError: If the file or table is missing or holds invalid values.
    """
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        raise ValidationError(f"No pyproject.toml found in {root}")

    table = get_tool_config(load_toml(pyproject))
    try:
        return ReleaseConfig.model_validate(table)
    except pydantic.ValidationError as exc:
        summary = f"Invalid [tool.{TOOL_TABLE}] configuration in {pyproject}"
        details = [
            f" * {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ValidationError(summary, [summary, *details]) from exc
