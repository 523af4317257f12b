"""Data models for mono-release.

These Pydantic models represent the core data structures used throughout
the release process: what a module declares, which version it is released
at, and what happened when its descriptor was rewritten.
"""

from __future__ import annotations

import json
from pathlib import Path

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """Identity of a referenced artifact as written in a descriptor.

    Attributes:
        group: Group the artifact belongs to (e.g., "com.example").
        artifact: Artifact id, unique within a workspace.
        version: Declared version, possibly a ${property} expression.
    """

    group: str
    artifact: str
    version: str | None = None

    @property
    def label(self) -> str:
        return f"{self.group}:{self.artifact}"


class ModuleInfo(BaseModel):
    """Metadata for a single module in the workspace.

    Attributes:
        path: Relative path from workspace root to the module directory.
        group: The module's group.
        artifact: The module's artifact id.
        version: Declared version from module.toml.
        parent: Parent reference, if any.
        dependencies: Declared dependency references.
        plugins: Declared build-plugin references.
        properties: Declared properties used for ${name} indirection.
        deps: Artifact ids of internal (workspace) modules this module
              references through its parent or dependencies.
    """

    path: str
    group: str
    artifact: str
    version: str
    parent: Coordinates | None = None
    dependencies: list[Coordinates] = Field(default_factory=list)
    plugins: list[Coordinates] = Field(default_factory=list)
    properties: dict[str, str] = Field(default_factory=dict)
    deps: list[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.group}:{self.artifact}"


class VersionName(BaseModel):
    """The version a module is released at.

    Attributes:
        business_version: Declared version without the snapshot marker.
        build_number: Build number of this release attempt.
        release_version: business_version + "." + build_number.
    """

    model_config = ConfigDict(frozen=True)

    business_version: str
    build_number: int
    release_version: str


class AnnotatedTag(BaseModel):
    """A release tag, created once against the current branch tip.

    The tag message records the business version and build number as JSON
    so a tag can be traced back to the release that produced it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    build_number: int

    def message(self) -> str:
        return json.dumps({"version": self.version, "buildNumber": self.build_number})

    @classmethod
    def create(cls, name: str, version: str, build_number: int) -> AnnotatedTag:
        return cls(name=name, version=version, build_number=build_number)


class ReleasableModule(BaseModel):
    """Release state of one module for the duration of one attempt.

    A module with an equivalent version is unchanged since a previous
    release: it reuses that release's version and is not released again.

    Attributes:
        info: The module as declared on disk.
        version: The version it will carry if released.
        equivalent_version: Previously released version to reuse, or None.
        errors: Unresolved references found while rewriting the descriptor.
        changed_file: The rewritten descriptor, once it has been written.
    """

    info: ModuleInfo
    version: VersionName
    equivalent_version: str | None = None
    errors: list[str] = Field(default_factory=list)
    changed_file: Path | None = None

    @property
    def artifact(self) -> str:
        return self.info.artifact

    @property
    def group(self) -> str:
        return self.info.group

    @property
    def new_version(self) -> str:
        return self.version.release_version

    @property
    def tag_name(self) -> str:
        return f"{self.info.artifact}-{self.version.release_version}"

    @property
    def relative_path_to_module(self) -> str:
        return self.info.path

    def will_be_released(self) -> bool:
        return self.equivalent_version is None

    def version_to_depend_on(self) -> str:
        """Version other modules should reference this module at."""
        if self.will_be_released():
            return self.version.release_version
        return self.equivalent_version  # type: ignore[return-value]

    def create_releasable_version(self) -> ReleasableModule:
        """Return a distinct copy of this module that will be released."""
        return ReleasableModule(
            info=self.info,
            version=self.version,
            equivalent_version=None,
        )

    def is_one_of(self, names: list[str]) -> bool:
        """Match against module directory names or artifact ids."""
        candidates = {canonicalize_name(self.info.artifact)}
        directory = Path(self.info.path).name
        if directory:
            candidates.add(canonicalize_name(directory))
        return any(canonicalize_name(name) in candidates for name in names)


class UpdateResult(BaseModel):
    """Outcome of rewriting every module descriptor in one attempt.

    Attributes:
        altered_modules: Modules whose descriptor was (or was being) rewritten.
        unexpected_error: Lower-level failure that stopped the rewrite pass.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    altered_modules: list[ReleasableModule] = Field(default_factory=list)
    unexpected_error: Exception | None = None

    @property
    def module_errors(self) -> list[str]:
        return [error for module in self.altered_modules for error in module.errors]

    @property
    def changed_files(self) -> list[Path]:
        return [m.changed_file for m in self.altered_modules if m.changed_file]

    @property
    def success(self) -> bool:
        return not self.module_errors and self.unexpected_error is None
