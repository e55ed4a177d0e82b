# routers/defects.py
from fastapi import APIRouter, UploadFile, File, Depends, Form, Query
from sqlalchemy.orm import Session
from database import get_db
from schemas import (
    CommentCreate,
    DefectPage,
    DefectResponse,
    DefectUpdate,
    StatusResponse,
    StatusUpdate,
    SuggestionsResponse,
)
from services import defects as defect_service
from services import messaging, storage
from services.authorization import Identity
from services.errors import ValidationError
from util.security import get_current_identity
from typing import List, Optional
import json
import logging

router = APIRouter(prefix="/defects", tags=["Defects"])

logger = logging.getLogger(__name__)


def parse_location_field(location: Optional[str], latitude: Optional[float], longitude: Optional[float]):
    """
    Accept the location form field as a JSON object or as plain text.

    Explicit latitude/longitude form fields win over values inside the JSON.
    """
    text, lat, lng = None, None, None

    if location:
        try:
            parsed = json.loads(location)
        except ValueError:
            parsed = location

        if isinstance(parsed, dict):
            text = parsed.get("text")
            lat = parsed.get("latitude")
            lng = parsed.get("longitude")
        else:
            text = location

    try:
        lat = float(lat) if lat not in (None, "") else None
        lng = float(lng) if lng not in (None, "") else None
    except (TypeError, ValueError):
        raise ValidationError("Invalid GPS coordinates")

    if latitude is not None:
        lat = latitude
    if longitude is not None:
        lng = longitude

    return text, lat, lng


@router.post("", response_model=DefectResponse, status_code=201)
def create_defect(
    title: str = Form(""),
    description: str = Form(""),
    type: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Submit a new report with up to six photos.

    Photos are validated before anything is written; if the report cannot be
    saved the stored photos are removed again.
    """
    location_text, lat, lng = parse_location_field(location, latitude, longitude)

    image_paths = storage.save_images(images)
    try:
        defect = defect_service.create_defect(
            db,
            identity,
            title=title,
            description=description,
            location_text=location_text,
            type=type,
            latitude=lat,
            longitude=lng,
            image_paths=image_paths,
        )
    except Exception:
        storage.discard(image_paths)
        raise

    return {"success": True, "data": defect}


@router.get("", response_model=DefectPage)
def list_defects(
    page: int = Query(1, ge=1),
    limit: int = Query(defect_service.DEFAULT_PAGE_SIZE, ge=1, le=defect_service.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Caller's reports (all reports for admins), newest first"""
    items, total_pages, total_items = defect_service.list_defects(db, identity, page, limit, search)

    return {
        "success": True,
        "data": items,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "totalItems": total_items,
    }


@router.get("/suggestions/search", response_model=SuggestionsResponse)
def search_suggestions(
    q: str = "",
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return {"success": True, "suggestions": defect_service.search_suggestions(db, q)}


@router.get("/{defect_id}", response_model=DefectResponse)
def get_defect(defect_id: int, db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    return {"success": True, "data": defect_service.get_defect(db, identity, defect_id)}


@router.put("/{defect_id}", response_model=DefectResponse)
def update_defect(
    defect_id: int,
    body: DefectUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Owner or admin edits title, description, type or location"""
    changes = body.model_dump(exclude_unset=True)
    defect = defect_service.update_defect(db, identity, defect_id, changes)
    return {"success": True, "data": defect}


@router.delete("/{defect_id}", response_model=StatusResponse)
def delete_defect(defect_id: int, db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    image_paths = defect_service.delete_defect(db, identity, defect_id)
    storage.discard(image_paths)
    return {"success": True, "message": "Report deleted"}


@router.put("/{defect_id}/status", response_model=DefectResponse)
def update_defect_status(
    defect_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Update report status (admins and moderators)"""
    defect = defect_service.set_status(db, identity, defect_id, body.status)
    return {"success": True, "data": defect}


@router.post("/{defect_id}/comment", response_model=DefectResponse)
def add_admin_comment(
    defect_id: int,
    body: CommentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Admin message to the reporter; also raises a notification"""
    defect = messaging.add_comment(db, identity, defect_id, body.message)
    return {"success": True, "message": "Comment added and user notified in app", "data": defect}


@router.put("/{defect_id}/read-comments", response_model=StatusResponse)
def mark_comments_read(defect_id: int, db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    messaging.mark_read(db, identity, defect_id)
    return {"success": True, "message": "Comments marked as read"}
