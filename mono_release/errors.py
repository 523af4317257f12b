"""Exceptions raised by the release process.

Every user-facing failure carries a one-line summary plus an ordered list of
message lines that can be printed as-is. The first message line is always
the summary.
"""

from __future__ import annotations

from collections.abc import Sequence


class ReleaseError(Exception):
    """Base class for release failures with a printable diagnostic."""

    def __init__(self, summary: str, messages: Sequence[str] | None = None) -> None:
        super().__init__(summary)
        self.summary = summary
        self.messages: list[str] = list(messages) if messages else [summary]

    def render(self) -> str:
        """Join the diagnostic lines for display."""
        return "\n".join(self.messages)


class ValidationError(ReleaseError):
    """A precondition or validation check failed; nothing should be released."""


class BuildError(ReleaseError):
    """The external build returned a failure."""


class RevertError(ReleaseError):
    """Changed files could not be restored after a successful build."""


class GitError(ReleaseError):
    """A git subprocess exited with a non-zero status.

    Attributes:
        command: The full git command line that failed.
        stderr: Captured standard error of the command.
        returncode: Process exit code.
    """

    def __init__(self, command: str, stderr: str, returncode: int = 1) -> None:
        summary = f"{command} failed with exit code {returncode}"
        messages = [summary]
        if stderr:
            messages.append(stderr)
        super().__init__(summary, messages)
        self.command = command
        self.stderr = stderr
        self.returncode = returncode


class UnresolvedSnapshotDependencyError(LookupError):
    """A snapshot reference points at a module outside the release set.

    Raised by the reactor lookup and collected per module by the version
    updater; it is never fatal on its own.
    """

    def __init__(self, group: str, artifact: str, version: str | None) -> None:
        super().__init__(f"Could not find {group}:{artifact}:{version}")
        self.group = group
        self.artifact = artifact
        self.version = version
