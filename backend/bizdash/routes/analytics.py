# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Aggregates are always computed for the caller only. The AI endpoints send
those aggregates to the insight collaborator and pass its text through;
when the collaborator is unavailable the response carries a fallback text
and `"fallback": true` instead of an error.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..extensions import db
from ..services import insight_service, reporting_service
from ..services.reporting_service import ReportError


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api")

MAX_PROMPT_CHARS = 2000


def _summary_for_caller() -> dict:
    summary = reporting_service.business_summary(db.session, g.current_user_id)
    # End the read transaction before any external call
    db.session.commit()
    return summary


def _text_field(data: dict, key: str) -> str | None:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()[:MAX_PROMPT_CHARS]


@analytics_bp.get("/analytics/summary")
@require_auth
def summary_route():
    months = request.args.get("months", 6, type=int)
    try:
        monthly = reporting_service.monthly_trend(db.session, g.current_user_id, months=months)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    summary = _summary_for_caller()
    return jsonify({**summary, "monthly": monthly})


@analytics_bp.get("/analytics/ai-insights")
@require_auth
def ai_insights_route():
    summary = _summary_for_caller()
    result = insight_service.business_insights(summary)
    return jsonify({
        "businessData": summary,
        "aiInsights": result.text,
        "fallback": result.fallback,
    })


@analytics_bp.get("/analytics/trends")
@require_auth
def trends_route():
    months = request.args.get("months", 6, type=int)
    try:
        monthly = reporting_service.monthly_trend(db.session, g.current_user_id, months=months)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    db.session.commit()

    result = insight_service.trend_analysis(monthly)
    return jsonify({
        "monthly": monthly,
        "trendAnalysis": result.text,
        "fallback": result.fallback,
    })


@analytics_bp.post("/analytics/query")
@require_auth
def query_route():
    data = request.get_json(silent=True) or {}
    query = _text_field(data, "query")
    if query is None:
        return jsonify({"error": "query is required"}), 400

    summary = _summary_for_caller()
    result = insight_service.analytics_query(summary, query)
    return jsonify({"insights": result.text, "fallback": result.fallback})


@analytics_bp.post("/chatbot")
@require_auth
def chatbot_route():
    data = request.get_json(silent=True) or {}
    message = _text_field(data, "message")
    if message is None:
        return jsonify({"error": "message is required"}), 400

    summary = _summary_for_caller()
    result = insight_service.chatbot_reply(message, summary)
    return jsonify({"response": result.text, "fallback": result.fallback})
