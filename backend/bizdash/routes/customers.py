# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..extensions import db
from ..services import records_service
from ..validation import ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    """The caller's customers, newest first."""
    items = records_service.customers(db.session).list_by_owner(g.current_user_id)
    return [c.to_dict() for c in items]


@customers_bp.post("")
@require_auth
def create_customer_route():
    """Create a customer. Only name is required."""
    payload = request.get_json(silent=True) or {}

    try:
        customer = records_service.customers(db.session).create(g.current_user_id, payload)
    except ValidationError as e:
        return {"error": str(e), "fields": e.fields}, 400

    return {"message": "Customer added successfully", "id": customer.id, "customer": customer.to_dict()}, 201
