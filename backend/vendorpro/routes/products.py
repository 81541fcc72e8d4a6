# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/vendorpro/routes/products.py
"""
Product catalog routes.

Stock cannot be edited here after creation: stock_quantity is only accepted
on POST (opening stock). Sales move it afterwards.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import SalesEngineError
from ..models import Product
from ..services import inventory_service, products_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    require_positive_int,
    validate_payload,
)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "base_price_cents", "selling_price_cents", "stock_quantity"},
    required_on_create={"name", "base_price_cents", "selling_price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "base_price_cents", "selling_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List a shop's products with optional pagination.

    Query params:
    - shop_id: int (required)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    shop_id = request.args.get("shop_id", type=int)
    if not shop_id:
        return jsonify({"error": "shop_id required"}), 400

    try:
        result = products_service.list_products(
            shop_id,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("")
def create_product():
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        shop_id = require_positive_int(data.pop("shop_id", None), "shop_id")

        patch = validate_payload(model=Product, payload=data, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)

        product = products_service.create_product(shop_id=shop_id, patch=patch)
        return jsonify({"product": product.to_dict()}), 201

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.patch("/<int:product_id>")
def update_product(product_id: int):
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        enforce_rules_product(patch)
        product = products_service.update_product(product_id, patch)
        return jsonify({"product": product.to_dict()}), 200

    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/movements")
def list_product_movements(product_id: int):
    """Stock audit trail for one product, oldest first."""
    try:
        product = products_service.get_product(product_id)
        movements = inventory_service.list_movements(product.id)
        return jsonify({
            "product_id": product.id,
            "stock_quantity": product.stock_quantity,
            "items": [m.to_dict() for m in movements],
        }), 200
    except SalesEngineError as e:
        return jsonify(e.to_dict()), e.status_code
