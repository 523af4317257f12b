"""Git repository handle.

LocalGitRepo wraps the tag, push, query and revert operations the release
needs against one local clone and (optionally) one remote. It knows nothing
about modules: callers hand it tag values and file paths.

Reverting is one-shot per handle. The release calls it from both the success
path and the always-run cleanup path, so the handle records whether a revert
already happened and turns the second call into a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from .errors import GitError, ValidationError
from .models import AnnotatedTag
from .shell import git

logger = logging.getLogger(__name__)

RELEASE_COMMIT_MESSAGE = "Incremented versions"


class RevertState(Enum):
    NOT_REVERTED = "not-reverted"
    REVERTED = "reverted"


class LocalGitRepo:
    """Tag gateway and rollback controller for one working tree.

    Attributes:
        root: Root of the working tree.
        remote: Remote name or URL given by configuration, or None.
        revert_state: Whether changed files were already reverted.
        release_commit: SHA of the commit made by commit_changes(), if any.
    """

    def __init__(self, root: Path, remote: str | None = None) -> None:
        self.root = root.resolve()
        self.remote = remote
        self.revert_state = RevertState.NOT_REVERTED
        self.release_commit: str | None = None
        self._remote_tags: set[str] | None = None

    @classmethod
    def from_dir(cls, directory: Path, remote: str | None = None) -> LocalGitRepo:
        """Open the repository whose working tree root is `directory`.

        Raises:
            ValidationError: If directory is not inside a git repository,
                or is inside one but is not its root.
        """
        directory = directory.resolve()
        toplevel = git("rev-parse", "--show-toplevel", cwd=directory, check=False)
        if not toplevel:
            summary = "Releases can only be performed from Git repositories."
            raise ValidationError(
                summary, [summary, f"{directory} is not a Git repository."]
            )
        root = Path(toplevel).resolve()
        if root != directory:
            summary = (
                "The release can only be run from the root folder of your "
                "Git repository"
            )
            raise ValidationError(
                summary,
                [
                    summary,
                    f"{directory} is not the root of a Git repository",
                    f"Try running the release from {root}",
                ],
            )
        return cls(root, remote)

    def _git(self, *args: str, check: bool = True) -> str:
        return git(*args, cwd=self.root, check=check)

    def _relative(self, path: Path) -> str:
        path = path if path.is_absolute() else self.root / path
        return path.resolve().relative_to(self.root).as_posix()

    # Status

    def status(self) -> tuple[list[str], list[str]]:
        """Return (uncommitted, untracked) paths from `git status`.

        Uses NUL-terminated porcelain v2, so paths are never quoted and
        entries never start with whitespace.
        """
        uncommitted: list[str] = []
        untracked: list[str] = []
        output = self._git("status", "--porcelain=v2", "-z", "--untracked-files=all")
        entries = iter(output.split("\0"))
        for entry in entries:
            kind = entry[:1]
            if kind == "?":
                untracked.append(entry[2:])
            elif kind == "1":
                uncommitted.append(entry.split(" ", 8)[8])
            elif kind == "2":
                uncommitted.append(entry.split(" ", 9)[9])
                next(entries, None)  # original path of a rename
            elif kind == "u":
                uncommitted.append(entry.split(" ", 10)[10])
        return uncommitted, untracked

    def error_if_not_clean(self) -> None:
        """Raise unless the working tree has no uncommitted or untracked files."""
        uncommitted, untracked = self.status()
        if not uncommitted and not untracked:
            return
        summary = (
            "Cannot release with uncommitted changes. "
            "Please check the following files:"
        )
        messages = [summary]
        if uncommitted:
            messages.append("Uncommitted:")
            messages.extend(f" * {path}" for path in uncommitted)
        if untracked:
            messages.append("Untracked:")
            messages.extend(f" * {path}" for path in untracked)
        messages.append("Please commit or revert these changes before releasing.")
        raise ValidationError(summary, messages)

    def head(self) -> str:
        return self._git("rev-parse", "HEAD")

    def changed_files_since(self, tag: str, path: str) -> list[str]:
        """List files under `path` touched by commits made since `tag`.

        Walks the commits reachable from HEAD but not from the tag, so the
        release commit the tag points at never counts as a change.
        """
        output = self._git(
            "log", "-z", "--name-only", "--format=", f"{tag}..HEAD", "--", path
        )
        names = (name.strip("\n") for name in output.split("\0"))
        return sorted({name for name in names if name})

    # Tags

    def local_tags(self, pattern: str = "*") -> list[str]:
        output = self._git("tag", "--list", pattern, check=False)
        return [line for line in output.splitlines() if line]

    def has_local_tag(self, name: str) -> bool:
        return name in self.local_tags(name)

    def remote_name(self) -> str | None:
        """Remote to use: the configured one, else origin, else the only one."""
        if self.remote:
            return self.remote
        remotes = self._git("remote", check=False).splitlines()
        if "origin" in remotes:
            return "origin"
        return remotes[0] if remotes else None

    def all_remote_tags(self) -> set[str]:
        """Names of every tag on the remote.

        Listed once and cached for the lifetime of this handle, so tags
        pushed during the attempt are not seen again.
        """
        if self._remote_tags is None:
            remote = self.remote_name()
            tags: set[str] = set()
            if remote is not None:
                output = self._git("ls-remote", "--tags", remote)
                for line in output.splitlines():
                    _, _, ref = line.partition("\t")
                    if ref.startswith("refs/tags/") and not ref.endswith("^{}"):
                        tags.add(ref.removeprefix("refs/tags/"))
            self._remote_tags = tags
        return self._remote_tags

    def tag_exists(self, name: str) -> bool:
        """True if a tag with this name exists on the remote."""
        return name in self.all_remote_tags()

    def remote_tags_from(self, tags: Iterable[AnnotatedTag]) -> list[str]:
        """Return the names of the given tags that already exist remotely."""
        return [tag.name for tag in tags if self.tag_exists(tag.name)]

    def commit_changes(self, message: str = RELEASE_COMMIT_MESSAGE) -> str | None:
        """Commit every modified tracked file and remember the commit.

        Returns:
            The new commit's SHA, or None if there was nothing to commit.
        """
        uncommitted, _ = self.status()
        if not uncommitted:
            logger.debug("No changes to commit")
            return None
        self._git("commit", "--all", "--message", message)
        self.release_commit = self.head()
        return self.release_commit

    def tag_repo(self, tag: AnnotatedTag) -> str:
        """Create an annotated tag at HEAD and return the tagged commit."""
        self._git("tag", "--annotate", tag.name, "--message", tag.message())
        return self.head()

    def push_tag(self, tag: AnnotatedTag) -> None:
        remote = self.remote_name()
        if remote is None:
            raise ValidationError(f"Cannot push {tag.name}: no remote is configured")
        self._git("push", remote, f"refs/tags/{tag.name}")

    def tag_repo_and_push(self, tag: AnnotatedTag) -> str:
        commit = self.tag_repo(tag)
        self.push_tag(tag)
        return commit

    # Revert

    def revert_changes(self, changed_files: Iterable[Path]) -> bool:
        """Restore changed files from the last commit (working-tree revert).

        Returns:
            True if every file was restored (or a revert already happened).
        """
        if self.revert_state is RevertState.REVERTED:
            return True
        ok = True
        for path in changed_files:
            ok = self._revert_file(path, "checkout", "--") and ok
        self.revert_state = RevertState.REVERTED
        return ok

    def revert_commit(self, changed_files: Iterable[Path]) -> bool:
        """Undo the release commit's effect on each changed file.

        Each path is restored individually from the parent of the release
        commit (HEAD~1 when none was recorded). When all paths were restored
        and HEAD is still the release commit, the branch is moved back so the
        working tree is clean; the release tags keep the commit reachable.

        Returns:
            True if every file was restored (or a revert already happened).
        """
        if self.revert_state is RevertState.REVERTED:
            return True
        base = f"{self.release_commit or 'HEAD'}~1"
        ok = True
        for path in changed_files:
            ok = self._revert_file(path, "checkout", base, "--") and ok
        if ok and self.release_commit is not None:
            try:
                if self.head() == self.release_commit:
                    self._git("reset", "--soft", "HEAD~1")
            except GitError as exc:
                ok = False
                logger.error(
                    "Unable to move the branch back from release commit %s: %s",
                    self.release_commit,
                    exc,
                )
        self.revert_state = RevertState.REVERTED
        return ok

    def _revert_file(self, path: Path, *command: str) -> bool:
        try:
            self._git(*command, self._relative(path))
        except (GitError, ValueError) as exc:
            logger.error(
                "Unable to revert changes to %s - you may need to manually revert "
                "this file. Error was: %s",
                path,
                exc,
            )
            return False
        return True
