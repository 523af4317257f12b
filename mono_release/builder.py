"""External build invocation.

Runs the configured build command once per release-scoped module, from the
workspace root with the module path appended (e.g. `uv build --out-dir dist/
modules/core`). The command is opaque here: only its exit status matters.
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import BuildError
from .models import ReleasableModule
from .shell import run, step
from .tags import is_selected


def modules_to_build(
    modules: list[ReleasableModule], modules_to_release: list[str] | None = None
) -> list[ReleasableModule]:
    """Release-scoped modules in build order.

    The requested subset when one is given, otherwise every module that will
    be released.
    """
    return [m for m in modules if is_selected(m, modules_to_release)]


def run_build(
    root: Path,
    goals: list[str],
    modules: list[ReleasableModule],
    *,
    skip_tests: bool = False,
) -> None:
    """Build each module, in order, with the release descriptors in place.

    Raises:
        BuildError: When the build command exits non-zero for a module.
    """
    step(f"Building {len(modules)} modules")

    for module in modules:
        path = module.relative_path_to_module
        print(f"\n  {module.artifact} {module.new_version} ({path})")
        env = dict(os.environ)
        env["MONO_RELEASE_ARTIFACT"] = module.artifact
        env["MONO_RELEASE_VERSION"] = module.new_version
        if skip_tests:
            env["SKIP_TESTS"] = "true"
        result = run(*goals, path, cwd=root, env=env, check=False)
        if result.returncode != 0:
            summary = f"Failed to build {module.artifact}"
            raise BuildError(
                summary,
                [
                    summary,
                    f"{' '.join([*goals, path])} exited with code {result.returncode}",
                ],
            )
