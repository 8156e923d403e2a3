# app/routes/order_records.py
from __future__ import annotations

import re
import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from services.exceptions import InvalidOrderDateError, OrderStorageError, RequestValidationError
from services.order_records.model import OrderRecordRequest

logger = logging.getLogger(__name__)

order_records_bp = Blueprint("order_records", __name__, url_prefix="/api/order-records")

_DATE_SHAPE_RE = re.compile(r"^$|^\d{4}-\d{2}-\d{2}$")

_REQUIRED_FIELDS = {
    "orderId": "orderId is required",
    "directoryPath": "directoryPath is required",
    "env": "env is required",
}


def _parse_request(payload: Any) -> OrderRecordRequest:
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object")

    errors: Dict[str, str] = {}
    for field, message in _REQUIRED_FIELDS.items():
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            errors[field] = message

    date_value = payload.get("date")
    if date_value is not None and (not isinstance(date_value, str) or not _DATE_SHAPE_RE.match(date_value)):
        errors["date"] = "date must be in yyyy-MM-dd format"

    if errors:
        raise RequestValidationError("Validation failed", errors)

    return OrderRecordRequest(
        order_id=payload["orderId"],
        directory_path=payload["directoryPath"],
        env=payload["env"],
        date=date_value,
    )


@order_records_bp.errorhandler(RequestValidationError)
def _validation_failed(exc: RequestValidationError):
    return jsonify({"error": exc.message, "details": exc.errors}), 400


@order_records_bp.errorhandler(InvalidOrderDateError)
def _bad_date(exc: InvalidOrderDateError):
    return jsonify({"error": exc.message}), 400


@order_records_bp.errorhandler(OrderStorageError)
def _storage_failed(exc: OrderStorageError):
    logger.exception(f"Order storage failed: {exc.message}")
    return jsonify({"error": exc.message}), 500


@order_records_bp.post("")
def store_order_record():
    """Append one order to the workbook in `directoryPath` and regenerate its sheets."""
    order_request = _parse_request(request.get_json(silent=True))
    service = current_app.extensions["order_record_service"]
    response = service.store_order_record(order_request)
    return jsonify(response.to_dict()), 201


@order_records_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200
