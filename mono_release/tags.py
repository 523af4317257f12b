"""Release tag naming, validation and creation.

Every module that will be released gets an annotated tag named
{artifact}-{release version}. Tags are checked against local tags first
(a local duplicate means this build number was already released here) and
then against the remote, where all collisions are reported together.
"""

from __future__ import annotations

from .errors import ValidationError
from .models import AnnotatedTag, ReleasableModule
from .repo import LocalGitRepo
from .shell import step


def is_selected(module: ReleasableModule, modules_to_release: list[str] | None) -> bool:
    """True if the module is released and in the requested subset (if any)."""
    if not module.will_be_released():
        return False
    return not modules_to_release or module.is_one_of(modules_to_release)


def figure_out_tag_names_and_raise_if_exists(
    modules: list[ReleasableModule],
    repo: LocalGitRepo,
    modules_to_release: list[str] | None = None,
) -> list[tuple[ReleasableModule, AnnotatedTag]]:
    """Compute the tag of every selected module and check it is unused.

    Args:
        modules: Modules in build order.
        repo: Repository to check local and remote tags in.
        modules_to_release: Optional subset of modules to release.

    Returns:
        (module, tag) pairs in build order.

    Raises:
        ValidationError: On the first local duplicate, or listing every
            tag that already exists on the remote.
    """
    step("Checking release tags")

    tags: list[tuple[ReleasableModule, AnnotatedTag]] = []
    for module in modules:
        if not is_selected(module, modules_to_release):
            print(f"  {module.artifact}: not released, skipping")
            continue
        name = module.tag_name
        if repo.has_local_tag(name):
            summary = f"There is already a tag named {name} in this repository."
            raise ValidationError(
                summary,
                [
                    summary,
                    "It is likely that this version has been released before.",
                    "Please try incrementing the build number and trying again.",
                ],
            )
        tag = AnnotatedTag.create(
            name, module.version.business_version, module.version.build_number
        )
        tags.append((module, tag))

    matching_remote_tags = repo.remote_tags_from(tag for _, tag in tags)
    if matching_remote_tags:
        summary = (
            "Cannot release because there is already a tag with the same "
            "build number on the remote Git repo."
        )
        raise ValidationError(
            summary,
            [
                summary,
                *(
                    f" * There is already a tag named {name} in the remote repo."
                    for name in matching_remote_tags
                ),
                "Please try releasing again with a new build number.",
            ],
        )

    for _, tag in tags:
        print(f"  {tag.name}")
    return tags


def tag_and_push(
    repo: LocalGitRepo,
    tags: list[tuple[ReleasableModule, AnnotatedTag]],
    push_tags: bool,
) -> dict[str, str]:
    """Commit the rewritten descriptors, then tag (and push) each module.

    The commit comes first because tags are created at HEAD.

    Returns:
        Map of tag name to the commit it was created at.
    """
    if not tags:
        return {}

    step("Tagging release")
    repo.commit_changes()

    tagged: dict[str, str] = {}
    for _, tag in tags:
        print(f"  About to tag the repository with {tag.name}")
        if push_tags:
            tagged[tag.name] = repo.tag_repo_and_push(tag)
        else:
            tagged[tag.name] = repo.tag_repo(tag)
    return tagged
