"""Commit finalization: turn draft changes into a revision.

Usage:
    from revisium_sync.sync.commit import commit_if_needed

    record = await commit_if_needed(target, requested=args.commit, action_label="Synced", change_count=12)
"""

import logging

from revisium_sync.connection import Connection
from revisium_sync.errors import ApiError, CommitError
from revisium_sync.sync.models import CommitRecord

logger = logging.getLogger(__name__)

TOOL_NAME = "revisium-sync"

DRAFT_NOTICE = "Changes applied to draft. Use --commit to create a revision."


def commit_comment(action_label: str, change_count: int) -> str:
    """Revision comment for ``change_count`` changes.

    Example:
        >>> commit_comment("Uploaded", 1)
        'Uploaded 1 item via revisium-sync'
        >>> commit_comment("Synced", 12)
        'Synced 12 items via revisium-sync'
    """
    item_word = "item" if change_count == 1 else "items"
    return f"{action_label} {change_count} {item_word} via {TOOL_NAME}"


async def commit_if_needed(
    connection: Connection,
    requested: bool,
    action_label: str,
    change_count: int,
) -> CommitRecord | None:
    """Create a revision from the draft when there is something to commit.

    - No changes: nothing happens, whatever ``requested`` says.
    - Changes but not requested: a warning is logged; the draft is left as is.
    - Changes and requested: exactly one create-revision call.

    Args:
        connection: Connection whose branch draft is committed.
        requested: Whether the operator asked for a commit (``--commit``).
        action_label: Verb for the comment (``"Uploaded"``, ``"Synced"``).
        change_count: Number of changes made to the draft.

    Returns:
        CommitRecord for the new revision, or ``None`` when nothing was
        committed.

    Raises:
        CommitError: If the revision cannot be created.  Not retried; the
            changes stay in the draft.
    """
    if change_count <= 0:
        return None

    if not requested:
        logger.warning(DRAFT_NOTICE)
        return None

    comment = commit_comment(action_label, change_count)
    url = connection.url
    logger.info("Creating revision...")

    try:
        revision = await connection.client.create_revision(
            url.organization, url.project, url.branch, comment
        )
    except ApiError as e:
        raise CommitError(f"Failed to create revision: {e}") from e

    if not revision or not revision.get("id"):
        raise CommitError("Failed to create revision: no revision returned")

    logger.info("Created revision: %s", revision["id"])
    return CommitRecord(revision_id=revision["id"], comment=comment)
