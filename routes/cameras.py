from sqlalchemy.exc import IntegrityError

from flask import Blueprint, request, jsonify, g
from models import db
from models.camera import Camera
from models.rental import ACTIVE_STATUSES, Rental
from services.conflicts import is_available
from services.intervals import BookingWindow
from services.schemas import CameraCreate, CameraUpdate, parse_payload
from utils.audit import log_event
from utils.auth_context import login_required
from utils.services import rental_service

camera_bp = Blueprint("camera", __name__, url_prefix="/cameras")


@camera_bp.get("")
@login_required
def list_cameras():
    status = request.args.get("status")
    category = request.args.get("category")
    search = (request.args.get("search") or "").strip() or None
    available_from = request.args.get("available_from")
    available_to = request.args.get("available_to")

    service = rental_service()
    cameras = service.resources.list_resources(status=status, category=category, search=search)

    # Optional availability window, checked with the same evaluator as admission
    if available_from and available_to:
        try:
            window = BookingWindow.parse(
                available_from, available_to,
                request.args.get("start_time"), request.args.get("end_time"),
            )
        except ValueError:
            return jsonify(error="Invalid date or time. Use YYYY-MM-DD and HH:MM"), 400
        if not window.is_well_formed():
            return jsonify(error="available_to must not be before available_from"), 400
        busy = service.bookings.active_bookings_by_resource([c.id for c in cameras], window)
        cameras = [c for c in cameras if is_available("available", window, busy.get(c.id, []))]

    return jsonify([c.to_dict() for c in cameras]), 200


@camera_bp.get("/<int:camera_id>")
@login_required
def get_camera(camera_id: int):
    camera = db.session.get(Camera, camera_id)
    if not camera:
        return jsonify(error="Camera not found"), 404
    return jsonify(camera.to_dict()), 200


@camera_bp.post("")
@login_required
def create_camera():
    data = parse_payload(CameraCreate, request.get_json(silent=True))

    camera = Camera(**data.model_dump(), status="available")
    db.session.add(camera)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Serial number already exists"), 409

    log_event("CAMERA_CREATE", user_id=g.user.id, entity="camera", entity_id=camera.id)
    return jsonify(camera.to_dict()), 201


@camera_bp.put("/<int:camera_id>")
@login_required
def update_camera(camera_id: int):
    camera = db.session.get(Camera, camera_id)
    if not camera:
        return jsonify(error="Camera not found"), 404

    data = parse_payload(CameraUpdate, request.get_json(silent=True))
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "brand", "model", "category", "daily_rate", "condition", "status"):
            continue
        setattr(camera, field, value)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Serial number already exists"), 409

    log_event("CAMERA_UPDATE", user_id=g.user.id, entity="camera", entity_id=camera.id)
    return jsonify(camera.to_dict()), 200


@camera_bp.delete("/<int:camera_id>")
@login_required
def delete_camera(camera_id: int):
    camera = db.session.get(Camera, camera_id)
    if not camera:
        return jsonify(error="Camera not found"), 404

    active = Rental.query.filter(Rental.camera_id == camera_id, Rental.status.in_(ACTIVE_STATUSES)).first()
    if active:
        return jsonify(error="Cannot delete camera with active rentals"), 400

    try:
        db.session.delete(camera)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Camera has rental history and cannot be deleted"), 409

    log_event("CAMERA_DELETE", user_id=g.user.id, entity="camera", entity_id=camera_id)
    return jsonify(message="Camera deleted successfully"), 200
