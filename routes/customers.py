from flask import Blueprint, request, jsonify, g

from models import db
from models.customer import Customer
from models.rental import ACTIVE_STATUSES, Rental
from services.schemas import CustomerCreate, CustomerUpdate, parse_payload
from utils.audit import log_event
from utils.auth_context import login_required

customer_bp = Blueprint("customer", __name__, url_prefix="/customers")

REQUIRED_FIELDS = ("name", "phone")


@customer_bp.get("")
@login_required
def list_customers():
    search = (request.args.get("search") or "").strip()

    q = Customer.query
    if search:
        like = f"%{search}%"
        q = q.filter(Customer.name.ilike(like) | Customer.email.ilike(like) | Customer.phone.ilike(like))

    rows = q.order_by(Customer.created_at.desc()).all()
    return jsonify([c.to_dict() for c in rows]), 200


@customer_bp.get("/<int:customer_id>")
@login_required
def get_customer(customer_id: int):
    customer = db.session.get(Customer, customer_id)
    if not customer:
        return jsonify(error="Customer not found"), 404

    # rental history, newest first
    rentals = (
        Rental.query
        .filter_by(customer_id=customer_id)
        .order_by(Rental.created_at.desc())
        .all()
    )
    out = customer.to_dict()
    out["rentals"] = [r.to_dict(with_relations=True) for r in rentals]
    return jsonify(out), 200


@customer_bp.post("")
@login_required
def create_customer():
    data = parse_payload(CustomerCreate, request.get_json(silent=True))

    customer = Customer(**data.model_dump())
    db.session.add(customer)
    db.session.commit()

    log_event("CUSTOMER_CREATE", user_id=g.user.id, entity="customer", entity_id=customer.id)
    return jsonify(customer.to_dict()), 201


@customer_bp.put("/<int:customer_id>")
@login_required
def update_customer(customer_id: int):
    customer = db.session.get(Customer, customer_id)
    if not customer:
        return jsonify(error="Customer not found"), 404

    data = parse_payload(CustomerUpdate, request.get_json(silent=True))
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(customer, field, value)
    db.session.commit()

    log_event("CUSTOMER_UPDATE", user_id=g.user.id, entity="customer", entity_id=customer.id)
    return jsonify(customer.to_dict()), 200


@customer_bp.delete("/<int:customer_id>")
@login_required
def delete_customer(customer_id: int):
    customer = db.session.get(Customer, customer_id)
    if not customer:
        return jsonify(error="Customer not found"), 404

    active = Rental.query.filter(Rental.customer_id == customer_id, Rental.status.in_(ACTIVE_STATUSES)).first()
    if active:
        return jsonify(error="Cannot delete customer with active rentals"), 400

    db.session.delete(customer)
    db.session.commit()

    log_event("CUSTOMER_DELETE", user_id=g.user.id, entity="customer", entity_id=customer_id)
    return jsonify(message="Customer deleted successfully"), 200
