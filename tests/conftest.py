"""Shared test fixtures."""

from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from mono_release.models import ModuleInfo, ReleasableModule, VersionName
from mono_release.versions import business_version, release_version

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git not installed"
)

BUILD_OK = [sys.executable, "-c", "import sys; sys.exit(0)"]
BUILD_FAIL = [sys.executable, "-c", "import sys; sys.exit(3)"]


def git_cmd(cwd: Path, *args: str) -> str:
    """Run git in cwd for test setup and assertions."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def write_module(
    root: Path,
    path: str,
    artifact: str,
    version: str,
    *,
    group: str = "com.example",
    dependencies: list[tuple[str, str, str]] | None = None,
    parent: tuple[str, str, str] | None = None,
    plugins: list[tuple[str, str, str]] | None = None,
    properties: dict[str, str] | None = None,
) -> Path:
    """Write a module.toml and return its path.

    References are (group, artifact, version) triples.
    """
    lines = [
        "# Module descriptor",
        "[module]",
        f'group = "{group}"',
        f'artifact = "{artifact}"',
        f'version = "{version}"',
    ]
    if parent:
        lines += ["", "[parent]", f'group = "{parent[0]}"']
        lines += [f'artifact = "{parent[1]}"', f'version = "{parent[2]}"']
    if properties:
        lines += ["", "[properties]"]
        lines += [f'"{k}" = "{v}"' for k, v in properties.items()]
    for table, refs in (("dependencies", dependencies), ("plugins", plugins)):
        for ref_group, ref_artifact, ref_version in refs or []:
            lines += ["", f"[[{table}]]", f'group = "{ref_group}"']
            lines += [f'artifact = "{ref_artifact}"', f'version = "{ref_version}"']

    module_dir = root / path
    module_dir.mkdir(parents=True, exist_ok=True)
    descriptor = module_dir / "module.toml"
    descriptor.write_text("\n".join(lines) + "\n")
    return descriptor


def write_root_config(root: Path, **settings: object) -> None:
    """Write a root pyproject.toml with a [tool.mono-release] table."""
    settings.setdefault("members", ["modules/*"])
    settings.setdefault("goals", BUILD_OK)
    settings.setdefault("push-tags", False)
    body = []
    for key, value in settings.items():
        if isinstance(value, bool):
            body.append(f"{key} = {'true' if value else 'false'}")
        elif isinstance(value, list):
            items = ", ".join(f"'{v}'" for v in value)
            body.append(f"{key} = [{items}]")
        else:
            body.append(f"{key} = '{value}'")
    (root / "pyproject.toml").write_text(
        '[project]\nname = "workspace"\n\n[tool.mono-release]\n'
        + "\n".join(body)
        + "\n"
    )


def make_releasable(
    artifact: str,
    version: str,
    build_number: int = 7,
    *,
    path: str | None = None,
    group: str = "com.example",
    equivalent_version: str | None = None,
) -> ReleasableModule:
    """Build a ReleasableModule without touching disk."""
    info = ModuleInfo(
        path=path or f"modules/{artifact}",
        group=group,
        artifact=artifact,
        version=version,
    )
    return ReleasableModule(
        info=info,
        version=VersionName(
            business_version=business_version(version),
            build_number=build_number,
            release_version=release_version(version, build_number),
        ),
        equivalent_version=equivalent_version,
    )


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate git from user configuration and give it an identity."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Release Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "release@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Release Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "release@example.com")


@pytest.fixture
def workspace(tmp_path: Path, git_identity: None) -> Path:
    """An empty git repository with a root config, not yet committed."""
    root = tmp_path / "workspace"
    root.mkdir()
    git_cmd(root, "init", "--quiet")
    write_root_config(root)
    return root


def commit_all(root: Path, message: str = "initial") -> str:
    git_cmd(root, "add", "--all")
    git_cmd(root, "commit", "--quiet", "--message", message)
    return git_cmd(root, "rev-parse", "HEAD")
