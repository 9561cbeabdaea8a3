from flask import Blueprint, request, jsonify, g

from services.schemas import RentalCreate, RentalUpdate, ReturnRequest, parse_payload
from utils.audit import log_event
from utils.auth_context import login_required
from utils.services import rental_service

rental_bp = Blueprint("rental", __name__, url_prefix="/rentals")


@rental_bp.get("")
@login_required
def list_rentals():
    rows = rental_service().bookings.list_bookings(
        status=request.args.get("status"),
        camera_id=request.args.get("camera_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
    )
    return jsonify([r.to_dict(with_relations=True) for r in rows]), 200


@rental_bp.get("/<int:rental_id>")
@login_required
def get_rental(rental_id: int):
    rental = rental_service().get(rental_id)
    return jsonify(rental.to_dict(with_relations=True)), 200


# ---------- admission (conflict-checked) ----------
@rental_bp.post("")
@login_required
def create_rental():
    data = parse_payload(RentalCreate, request.get_json(silent=True))
    rental = rental_service().admit(data)

    log_event(
        "RENTAL_CREATE", user_id=g.user.id, entity="rental", entity_id=rental.id,
        metadata={"camera_id": rental.camera_id, **rental.window.to_dict()},
    )
    return jsonify(rental.to_dict(with_relations=True)), 201


@rental_bp.put("/<int:rental_id>")
@login_required
def update_rental(rental_id: int):
    data = parse_payload(RentalUpdate, request.get_json(silent=True))
    rental = rental_service().update(rental_id, data)

    log_event(
        "RENTAL_UPDATE", user_id=g.user.id, entity="rental", entity_id=rental.id,
        metadata={"fields": sorted(data.model_fields_set), "status": rental.status},
    )
    return jsonify(rental.to_dict(with_relations=True)), 200


@rental_bp.post("/<int:rental_id>/return")
@login_required
def return_rental(rental_id: int):
    data = parse_payload(ReturnRequest, request.get_json(silent=True))
    rental = rental_service().complete(rental_id, data.actual_return_date)

    log_event("RENTAL_RETURN", user_id=g.user.id, entity="rental", entity_id=rental.id)
    return jsonify(rental.to_dict(with_relations=True)), 200


@rental_bp.post("/<int:rental_id>/cancel")
@login_required
def cancel_rental(rental_id: int):
    rental = rental_service().cancel(rental_id)

    log_event("RENTAL_CANCEL", user_id=g.user.id, entity="rental", entity_id=rental.id)
    return jsonify(rental.to_dict(with_relations=True)), 200


@rental_bp.delete("/<int:rental_id>")
@login_required
def delete_rental(rental_id: int):
    rental_service().delete(rental_id)

    log_event("RENTAL_DELETE", user_id=g.user.id, entity="rental", entity_id=rental_id)
    return jsonify(message="Rental deleted successfully"), 200
