# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales routes.

A sale may reference a product and/or customer; both must belong to the
caller. total is always quantity * price, computed server-side.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..extensions import db
from ..services import records_service
from ..services.records_service import NotFoundError
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    items = records_service.sales(db.session).list_by_owner(g.current_user_id)
    return [s.to_dict() for s in items]


@sales_bp.post("")
@require_auth
def create_sale_route():
    payload = request.get_json(silent=True) or {}

    try:
        sale = records_service.sales(db.session).create(g.current_user_id, payload)
    except ValidationError as e:
        return {"error": str(e), "fields": e.fields}, 400

    return {"message": "Sale recorded successfully", "id": sale.id, "sale": sale.to_dict()}, 201


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    """Partial update; a quantity or price change recomputes total."""
    payload = request.get_json(silent=True) or {}

    try:
        sale = records_service.sales(db.session).update(g.current_user_id, sale_id, payload)
    except ValidationError as e:
        return {"error": str(e), "fields": e.fields}, 400
    except NotFoundError:
        return {"error": "Sale not found"}, 404

    return {"message": "Sale updated successfully", "sale": sale.to_dict()}, 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
def delete_sale_route(sale_id: int):
    try:
        records_service.sales(db.session).delete(g.current_user_id, sale_id)
    except NotFoundError:
        return {"error": "Sale not found"}, 404

    return {"message": "Sale deleted successfully"}, 200
