# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/bizdash/routes/products.py
"""
Product management routes.

All product operations are scoped to the caller (g.current_user_id, set by
@require_auth). A product id that belongs to another user is answered
exactly like one that does not exist: 404.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..extensions import db
from ..services import records_service
from ..services.records_service import NotFoundError
from ..validation import ValidationError, DuplicateError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _products() -> records_service.ProductRepository:
    return records_service.products(
        db.session,
        low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
    )


@products_bp.get("")
@require_auth
def list_products_route():
    """The caller's products, most recently updated first."""
    items = _products().list_by_owner(g.current_user_id)
    return [p.to_dict() for p in items]


@products_bp.post("")
@require_auth
def create_product_route():
    """
    Create a product.

    Required: name, category, sku, stock, price, cost. Optional: supplier.
    Status is derived from stock; any status in the payload is ignored.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = _products().create(g.current_user_id, payload)
    except ValidationError as e:
        return {"error": str(e), "fields": e.fields}, 400
    except DuplicateError as e:
        return {"error": str(e)}, 400

    return {"message": "Product added successfully", "id": product.id, "product": product.to_dict()}, 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = _products().get(g.current_user_id, product_id)
    except NotFoundError:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """
    Update a product (partial payloads allowed).

    A stock change recomputes status in the same statement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = _products().update(g.current_user_id, product_id, payload)
    except ValidationError as e:
        return {"error": str(e), "fields": e.fields}, 400
    except DuplicateError as e:
        return {"error": str(e)}, 400
    except NotFoundError:
        return {"error": "Product not found"}, 404

    return {"message": "Product updated successfully", "product": product.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        _products().delete(g.current_user_id, product_id)
    except NotFoundError:
        return {"error": "Product not found"}, 404

    return {"message": "Product deleted successfully"}, 200
