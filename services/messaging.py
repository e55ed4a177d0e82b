# services/messaging.py
"""
Admin comments on a defect and the owner's notifications derived from them.

A comment and its notification are appended to the same defect and saved in
one commit. Read state is per defect: marking read clears every pending
notification of that report at once.
"""
import logging

from sqlalchemy.orm import Session

from model import AdminComment, Defect, Notification
from services.authorization import Action, Identity, require
from services.defects import commit_or_not_found, load_defect
from services.errors import ValidationError

logger = logging.getLogger(__name__)

NOTIFICATION_TEMPLATE = "Admin commented: {message}"


def add_comment(db: Session, identity: Identity, defect_id: int, message: str) -> Defect:
    require(identity, Action.comment, message="Only admins can comment on reports")

    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message is required")
    message = message.strip()

    defect = load_defect(db, defect_id)
    defect.admin_comments.append(AdminComment(message=message, admin_id=identity.user_id))
    defect.notifications.append(Notification(text=NOTIFICATION_TEMPLATE.format(message=message), read=False))
    commit_or_not_found(db)

    logger.info(f"Admin {identity.user_id} commented on defect {defect_id}")
    return load_defect(db, defect_id)


def mark_read(db: Session, identity: Identity, defect_id: int) -> None:
    """Mark every notification of the defect read; repeating it is a no-op"""
    defect = load_defect(db, defect_id)
    require(identity, Action.mark_read, defect)

    changed = 0
    for notification in defect.notifications:
        if not notification.read:
            notification.read = True
            changed += 1

    if changed:
        commit_or_not_found(db)
        logger.info(f"User {identity.user_id} read {changed} notification(s) on defect {defect_id}")


def unread_summary(db: Session, identity: Identity):
    """
    Unread notifications across the defects visible to the caller.

    Computed on every call; nothing is cached. Returns the total and one
    entry per defect that has unread notifications, newest defect first.
    """
    query = db.query(Defect.id, Defect.title, Notification.id).join(
        Notification, Notification.defect_id == Defect.id
    ).filter(Notification.read.is_(False))

    if not identity.is_admin:
        query = query.filter(Defect.owner_id == identity.user_id)

    rows = query.order_by(Defect.created_at.desc(), Defect.id.desc(), Notification.id).all()

    per_defect = {}
    for defect_id, title, _ in rows:
        entry = per_defect.setdefault(defect_id, {"defect_id": defect_id, "title": title, "unread": 0})
        entry["unread"] += 1

    items = list(per_defect.values())
    return sum(item["unread"] for item in items), items
