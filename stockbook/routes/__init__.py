# Overview: Blueprint registration and the failure envelope shared by every route.

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..errors import LedgerError, ValidationError


def json_body() -> dict:
    """Request JSON as a dict; anything else is a ValidationError."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def handle_ledger_error(exc: LedgerError):
    return jsonify(exc.to_dict()), exc.status_code


def handle_unexpected_error(exc: Exception):
    # Werkzeug HTTP errors (404 route, 405 method) keep their own response
    if isinstance(exc, HTTPException):
        return exc
    current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}), 500


def register_blueprints(app: Flask) -> None:
    from .system import system_bp
    from .products import products_bp
    from .orders import orders_bp
    from .payments import payments_bp
    from .customers import customers_bp
    from .purchases import purchases_bp
    from .suppliers import suppliers_bp
    from .stock import stock_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(stock_bp)

    app.register_error_handler(LedgerError, handle_ledger_error)
    app.register_error_handler(Exception, handle_unexpected_error)
