"""HTTP routes for recording trips and expenses and viewing the dashboard."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from flask import Blueprint, Response, abort, current_app, jsonify, request
from sqlalchemy.exc import NoResultFound

from haul_common import (
    ValidationError,
    filter_by_truck,
    normalize_expense,
    normalize_trip,
    record_to_document,
)

from .. import current_user_id, get_gemini_client, get_repository
from ..forms import (
    parse_expense_form,
    parse_rates_form,
    parse_receipt_form,
    parse_trip_form,
)
from ..gemini import AIServiceError, AIServiceNotConfigured, expense_input_from_receipt
from ..services import build_dashboard, build_summary_text, categories_for_select

records_bp = Blueprint("records", __name__)


def _submitted() -> Mapping[str, Any]:
    """Return the request body as a mapping, accepting JSON or form posts."""

    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form


def _errors(errors, status: int = 400) -> Tuple[Response, int]:
    return jsonify({"errors": list(errors)}), status


@records_bp.get("/api/categories")
def list_categories() -> Response:
    """Expose expense categories to the entry form."""

    return jsonify(
        [
            {"code": option.code, "label": option.label, "description": option.description}
            for option in categories_for_select()
        ]
    )


@records_bp.get("/api/records")
def list_records() -> Response:
    """Return the user's records newest first, optionally filtered by truck."""

    repo = get_repository()
    records = filter_by_truck(
        repo.list_records(current_user_id()), request.args.get("truck", "")
    )
    return jsonify([record_to_document(record) for record in records])


@records_bp.get("/api/records/<record_id>")
def get_record(record_id: str) -> Response:
    """Return a single record."""

    repo = get_repository()
    try:
        record = repo.get_record(current_user_id(), record_id)
    except NoResultFound:
        abort(404)
    return jsonify(record_to_document(record))


@records_bp.post("/api/trips")
def create_trip():
    """Record a delivery using the rates currently in force."""

    trip_input, errors = parse_trip_form(_submitted())
    if errors or trip_input is None:
        return _errors(errors)

    user_id = current_user_id()
    repo = get_repository()
    try:
        record = normalize_trip(trip_input, repo.get_rates(user_id))
    except ValidationError as exc:
        return _errors(exc.errors)
    saved = repo.create_record(user_id, record)
    current_app.logger.info("Recorded trip %s for truck %s", saved.id, saved.truck_id)
    return jsonify(record_to_document(saved)), 201


@records_bp.post("/api/expenses")
def create_expense():
    """Record a standalone expense."""

    expense_input, errors = parse_expense_form(_submitted())
    if errors or expense_input is None:
        return _errors(errors)

    try:
        record = normalize_expense(expense_input)
    except ValidationError as exc:
        return _errors(exc.errors)
    saved = get_repository().create_record(current_user_id(), record)
    current_app.logger.info(
        "Recorded %s expense %s for truck %s",
        saved.category.value,
        saved.id,
        saved.truck_id,
    )
    return jsonify(record_to_document(saved)), 201


@records_bp.delete("/api/records/<record_id>")
def delete_record(record_id: str):
    """Delete a trip or expense."""

    try:
        get_repository().delete_record(current_user_id(), record_id)
    except NoResultFound:
        abort(404)
    current_app.logger.info("Deleted record %s", record_id)
    return "", 204


@records_bp.get("/api/rates")
def get_rates() -> Response:
    """Return the rates applied to newly recorded trips."""

    rates = get_repository().get_rates(current_user_id())
    return jsonify(rates.to_dict())


@records_bp.put("/api/rates")
def update_rates():
    """Change the active rates; existing records keep their applied rates."""

    rates, errors = parse_rates_form(_submitted())
    if errors or rates is None:
        return _errors(errors)
    get_repository().save_rates(current_user_id(), rates)
    return jsonify(rates.to_dict())


@records_bp.get("/api/dashboard")
def dashboard() -> Response:
    """Return totals, the profit series, destinations and cost breakdown."""

    records = get_repository().list_records(current_user_id())
    return jsonify(build_dashboard(records))


@records_bp.get("/summary.txt")
def summary_text() -> Response:
    """Return a copy-ready plain-text summary."""

    user_id = current_user_id()
    repo = get_repository()
    text = build_summary_text(repo.list_records(user_id), repo.get_rates(user_id))
    return Response(text, mimetype="text/plain")


@records_bp.post("/api/report")
def generate_report():
    """Ask Gemini for a short written analysis of recent records."""

    records = get_repository().list_records(current_user_id())
    try:
        report = get_gemini_client().generate_report(records)
    except AIServiceNotConfigured as exc:
        current_app.logger.warning("AI report requested without an API key")
        return _errors([str(exc)], 503)
    except AIServiceError as exc:
        current_app.logger.error("AI report failed: %s", exc)
        return _errors([str(exc)], 502)
    return jsonify({"report": report})


@records_bp.post("/api/receipts/scan")
def scan_receipt():
    """Extract expense fields from a receipt photo.

    The extracted values are returned as a candidate expense; nothing is
    saved. Candidates that fail validation are reported with 422 so the
    user can correct them by hand.
    """

    form_data, errors = parse_receipt_form(request.form, request.files.get("receipt"))
    if errors or form_data is None:
        return _errors(errors)

    try:
        extraction = get_gemini_client().scan_receipt(
            form_data.image, form_data.mime_type
        )
    except AIServiceNotConfigured as exc:
        current_app.logger.warning("Receipt scan requested without an API key")
        return _errors([str(exc)], 503)
    except AIServiceError as exc:
        current_app.logger.error("Receipt scan failed: %s", exc)
        return _errors([str(exc)], 502)

    candidate = expense_input_from_receipt(
        extraction,
        truck_id=form_data.truck_id,
        category=form_data.category,
        fallback_date=form_data.date,
        fallback_amount=form_data.amount,
        fallback_description=form_data.description,
    )
    extracted: Dict[str, Any] = {
        "date": extraction.date,
        "amount": extraction.amount,
        "description": extraction.description,
    }
    try:
        record = normalize_expense(candidate)
    except ValidationError as exc:
        return jsonify({"extracted": extracted, "errors": exc.errors}), 422
    return jsonify({"extracted": extracted, "candidate": record_to_document(record)})
