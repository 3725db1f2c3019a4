# Overview: Flask API routes for imports; parses input and returns JSON responses.

"""
Import Routes

POST /api/upload-csv takes a multipart `file` field holding a product CSV
with columns name,category,sku,stock,price,cost[,supplier]. Rows are
upserted by SKU one at a time; bad rows are counted, not fatal.
"""

import csv
import io

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..extensions import db
from ..services import records_service


imports_bp = Blueprint("imports", __name__, url_prefix="/api")

CSV_MIMETYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}


def _is_csv(file) -> bool:
    filename = (file.filename or "").lower()
    return filename.endswith(".csv") or (file.mimetype or "") in CSV_MIMETYPES


def parse_csv(stream) -> list[dict]:
    """Read the whole upload into dict rows (header row gives the keys)."""
    text = stream.read().decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []
    reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
    return [row for row in reader]


@imports_bp.post("/upload-csv")
@require_auth
def upload_csv_route():
    if "file" not in request.files:
        return jsonify({"error": "No file uploaded"}), 400

    file = request.files["file"]
    if not file.filename:
        return jsonify({"error": "No file uploaded"}), 400
    if not _is_csv(file):
        return jsonify({"error": "Only CSV files are allowed"}), 400

    try:
        rows = parse_csv(file.stream)
    except (UnicodeDecodeError, csv.Error):
        current_app.logger.warning("Unreadable CSV upload from user id=%s", g.current_user_id)
        return jsonify({"error": "Error processing CSV file"}), 400

    repo = records_service.products(
        db.session,
        low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
    )
    summary = repo.bulk_upsert(g.current_user_id, rows)

    current_app.logger.info(
        "CSV import for user id=%s: %s rows, %s ok, %s failed",
        g.current_user_id, summary.total_rows, summary.success_count, summary.error_count,
    )
    return jsonify({"message": "CSV upload completed", **summary.to_dict()}), 200
