from flask import Blueprint, jsonify

from utils.auth_context import login_required
from utils.services import dashboard_aggregator, rental_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@dashboard_bp.get("/stats")
@login_required
def stats():
    now = rental_service().now()
    return jsonify(dashboard_aggregator().stats(now)), 200
