"""
Identity resolution: one user per distinct email.

Re-registering with a known email must not fork the identity, so the
existing user always wins and the new contact details are discarded.
"""

from event_booking.core.logging import get_logger
from event_booking.core.metrics import record_user_resolution
from event_booking.schemas.user import User, UserDraft
from event_booking.stores.interfaces import RecordStore, new_id

logger = get_logger(__name__)


async def resolve_user(store: RecordStore, draft: UserDraft) -> User:
    """
    Return the user for ``draft.email``, creating it on first sight.

    The lookup is only a fast path. Creation goes through the store's
    compare-and-insert on the email index, so two concurrent resolutions of
    the same new email yield the same user.
    """
    existing = await store.find_user_by_email(draft.email)
    if existing is not None:
        record_user_resolution(created=False)
        logger.info("user_resolved", user_id=existing.id, created=False)
        return existing

    candidate = User.from_draft(draft).model_copy(update={"id": new_id()})
    stored = await store.insert_user_if_absent(candidate)

    created = stored.id == candidate.id
    record_user_resolution(created=created)
    logger.info("user_resolved", user_id=stored.id, created=created)
    return stored
