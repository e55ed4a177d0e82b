# services/defects.py
"""
Defect lifecycle: create, list, read, update, status changes, delete and
search suggestions.

Every function takes the caller's ``Identity`` explicitly; nothing here reads
ambient request state. Status changes are permissive: any of the five
statuses may follow any other, the only gate is the caller's role.
"""
import logging
import math
from typing import List, Optional

from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from model import Defect, DefectStatus, DefectType
from services.authorization import Action, Identity, require
from services.errors import NotFound, ValidationError
from services.storage import MAX_IMAGES

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 6
MAX_PAGE_SIZE = 100
MAX_SUGGESTIONS = 10
UPDATABLE_FIELDS = ("title", "description", "type", "location")


def parse_type(value) -> DefectType:
    if value is None or value == "":
        return DefectType.normal
    try:
        return DefectType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DefectType)
        raise ValidationError(f"Invalid type. Must be one of: {allowed}")


def parse_status(value) -> DefectStatus:
    try:
        return DefectStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in DefectStatus)
        raise ValidationError(f"Invalid status. Must be one of: {allowed}")


def _clean_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _check_coordinates(latitude, longitude):
    if latitude is not None and not (-90 <= latitude <= 90):
        raise ValidationError("Invalid GPS coordinates")
    if longitude is not None and not (-180 <= longitude <= 180):
        raise ValidationError("Invalid GPS coordinates")


def commit_or_not_found(db: Session):
    """Commit; a concurrent delete of the defect turns into NotFound"""
    try:
        db.commit()
    except (IntegrityError, StaleDataError):
        db.rollback()
        raise NotFound()


def _query_with_children(db: Session):
    return db.query(Defect).options(
        joinedload(Defect.owner),
        selectinload(Defect.admin_comments),
        selectinload(Defect.notifications),
    )


def load_defect(db: Session, defect_id: int) -> Defect:
    defect = _query_with_children(db).filter(Defect.id == defect_id).first()
    if defect is None:
        raise NotFound()
    return defect


def create_defect(
    db: Session,
    identity: Identity,
    title: str,
    description: str,
    location_text: str,
    type=None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    image_paths: Optional[List[str]] = None,
) -> Defect:
    """Persist a new pending defect owned by the caller"""
    require(identity, Action.create)

    title = _clean_text(title, "Title")
    description = _clean_text(description, "Description")
    location_text = _clean_text(location_text, "Location")
    defect_type = parse_type(type)
    _check_coordinates(latitude, longitude)

    image_paths = list(image_paths or [])
    if len(image_paths) > MAX_IMAGES:
        raise ValidationError(f"Too many images. Maximum: {MAX_IMAGES}")

    defect = Defect(
        owner_id=identity.user_id,
        title=title,
        description=description,
        type=defect_type,
        status=DefectStatus.pending,
        location_text=location_text,
        latitude=latitude,
        longitude=longitude,
        image_urls=image_paths,
        upvotes=0,
    )
    db.add(defect)
    db.commit()

    logger.info(f"User {identity.user_id} created defect {defect.id} with {len(image_paths)} image(s)")
    return load_defect(db, defect.id)


def list_defects(
    db: Session,
    identity: Identity,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
):
    """
    One page of the defects visible to the caller, newest first.

    Non-admins only see their own reports. ``search`` is a case-insensitive
    substring match on title or description.

    Returns:
        (items, total_pages, total_items)
    """
    if page < 1:
        raise ValidationError("page must be at least 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    query = db.query(Defect)

    if not identity.is_admin:
        query = query.filter(Defect.owner_id == identity.user_id)

    search = (search or "").strip()
    if search:
        needle = search.lower()
        query = query.filter(
            or_(
                func.lower(Defect.title).contains(needle, autoescape=True),
                func.lower(Defect.description).contains(needle, autoescape=True),
            )
        )

    total_items = query.count()
    total_pages = math.ceil(total_items / page_size)

    # id breaks ties between rows created within the same clock tick
    items = (
        query.options(
            joinedload(Defect.owner),
            selectinload(Defect.admin_comments),
            selectinload(Defect.notifications),
        )
        .order_by(Defect.created_at.desc(), Defect.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return items, total_pages, total_items


def get_defect(db: Session, identity: Identity, defect_id: int) -> Defect:
    defect = load_defect(db, defect_id)
    require(identity, Action.read, defect)
    return defect


def update_defect(db: Session, identity: Identity, defect_id: int, changes: dict) -> Defect:
    """
    Partial update by the owner or an admin.

    Only keys present in ``changes`` are touched. ``location`` is a mapping
    with ``text`` and optional ``latitude``/``longitude``; the owner never
    changes.
    """
    defect = load_defect(db, defect_id)
    require(identity, Action.update, defect, message="Not authorized to update this report")

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

    # Validate everything before touching the row
    values = {}
    if "title" in changes:
        values["title"] = _clean_text(changes["title"], "Title")
    if "description" in changes:
        values["description"] = _clean_text(changes["description"], "Description")
    if "type" in changes:
        # Blank means "normal" only when creating
        if changes["type"] in (None, ""):
            raise ValidationError("Type is required")
        values["type"] = parse_type(changes["type"])
    if "location" in changes:
        location = changes["location"] or {}
        _check_coordinates(location.get("latitude"), location.get("longitude"))
        values["location_text"] = _clean_text(location.get("text"), "Location")
        values["latitude"] = location.get("latitude")
        values["longitude"] = location.get("longitude")

    for attribute, value in values.items():
        setattr(defect, attribute, value)

    commit_or_not_found(db)
    logger.info(f"User {identity.user_id} updated defect {defect_id}: {', '.join(sorted(changes)) or 'no fields'}")
    return load_defect(db, defect_id)


def set_status(db: Session, identity: Identity, defect_id: int, new_status) -> Defect:
    """Move a defect to any status; admins and moderators only"""
    require(identity, Action.set_status)
    status = parse_status(new_status)

    defect = load_defect(db, defect_id)
    previous = defect.status
    defect.status = status
    commit_or_not_found(db)

    logger.info(f"User {identity.user_id} set defect {defect_id} status {previous.value} -> {status.value}")
    return load_defect(db, defect_id)


def delete_defect(db: Session, identity: Identity, defect_id: int) -> List[str]:
    """
    Hard delete; comments and notifications go with the row.

    Returns the image paths the defect referenced so the caller can remove
    the files.
    """
    defect = load_defect(db, defect_id)
    require(identity, Action.delete, defect, message="Not authorized to delete this report")

    image_paths = list(defect.image_urls or [])
    db.delete(defect)
    commit_or_not_found(db)

    logger.info(f"User {identity.user_id} deleted defect {defect_id}")
    return image_paths


def search_suggestions(db: Session, query_text: Optional[str]) -> List[str]:
    """
    Distinct titles, location texts and types of up to ten matching defects.

    Not scoped to the caller: every report is searched.
    """
    needle = (query_text or "").strip().lower()

    query = db.query(Defect.title, Defect.location_text, Defect.type)
    if needle:
        query = query.filter(
            or_(
                func.lower(Defect.title).contains(needle, autoescape=True),
                func.lower(Defect.location_text).contains(needle, autoescape=True),
                func.lower(cast(Defect.type, String)).contains(needle, autoescape=True),
            )
        )

    rows = query.order_by(Defect.created_at.desc(), Defect.id.desc()).limit(MAX_SUGGESTIONS).all()

    suggestions = []
    seen = set()
    for title, location_text, defect_type in rows:
        for value in (title, location_text, defect_type.value if defect_type else None):
            if value and value not in seen:
                seen.add(value)
                suggestions.append(value)

    return suggestions[:MAX_SUGGESTIONS]
