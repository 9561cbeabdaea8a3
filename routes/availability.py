from flask import Blueprint, request, jsonify

from services.schemas import AvailabilityQuery, parse_payload
from utils.auth_context import login_required
from utils.services import rental_service

availability_bp = Blueprint("availability", __name__, url_prefix="/availability")


@availability_bp.get("")
@login_required
def available_cameras():
    """Cameras that are `available` and free for the whole requested window."""
    args = request.args.to_dict()
    if not args.get("start_date") or not args.get("end_date"):
        return jsonify(error="Start date and end date are required"), 400

    query = parse_payload(AvailabilityQuery, args)
    cameras = rental_service().search_available(
        query.window(), category=query.category, search=query.search
    )
    return jsonify([c.to_dict() for c in cameras]), 200
