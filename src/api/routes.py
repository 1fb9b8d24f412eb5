"""
API endpoints for Pastry Sales Insights: branch groups, sales analytics, assistant chat.
"""

import logging
from flask import Flask, request, jsonify
from typing import Any, Dict, Optional

from src.models.sales import DateRange
from src.services.exceptions import AssistantError

logger = logging.getLogger(__name__)

# Lazy-loaded assistant (set by main, tests, or on first use)
_assistant: Optional[Any] = None


def get_assistant():
    """Create and cache the SalesAssistant (builds the branch registry on first use)."""
    global _assistant
    if _assistant is None:
        from src.services.chatbot_service import SalesAssistant
        _assistant = SalesAssistant()
    return _assistant


def set_assistant(assistant: Any) -> None:
    """Inject assistant (e.g. from main or tests)."""
    global _assistant
    _assistant = assistant


def _date_range_from(source: Dict[str, Any]) -> Optional[DateRange]:
    start, end = source.get("startDate"), source.get("endDate")
    if not start or not end:
        return None
    date_range = DateRange(str(start), str(end))
    date_range.normalize()  # raises ValueError on malformed dates
    return date_range


def create_app() -> Flask:
    app = Flask(__name__)

    @app.route("/api/health", methods=["GET"])
    def health_check() -> Dict[str, str]:
        return jsonify({"status": "ok", "message": "Pastry Sales Insights API is running"})

    @app.route("/api/branches", methods=["GET"])
    def branch_groups() -> tuple:
        """Branch rosters per group."""
        try:
            return jsonify({"groups": get_assistant().branch_groups.to_dict()}), 200
        except Exception as e:
            logger.exception("Listing branch groups failed")
            return jsonify({"error": str(e)}), 500

    @app.route("/api/branches/refresh", methods=["POST"])
    def refresh_branches() -> tuple:
        """Re-read the branch listing and swap the registry contents."""
        try:
            assistant = get_assistant()
            assistant.branch_groups.refresh(assistant.orders_client.list_branches())
            return jsonify({"groups": assistant.branch_groups.to_dict()}), 200
        except AssistantError as e:
            return jsonify({"error": e.message}), 502
        except Exception as e:
            logger.exception("Refreshing branch groups failed")
            return jsonify({"error": str(e)}), 500

    @app.route("/api/analytics/sales", methods=["GET"])
    def sales_analytics() -> tuple:
        """Aggregated sales per product plus tiers. Query: startDate, endDate (YYYY-MM-DD or DD.MM.YYYY)."""
        try:
            try:
                date_range = _date_range_from(request.args)
            except ValueError:
                return jsonify({"error": "startDate and endDate must be valid dates (YYYY-MM-DD or DD.MM.YYYY)"}), 400
            if date_range is None:
                return jsonify({"error": "startDate and endDate are required"}), 400
            result = get_assistant().analyze(date_range)
            return jsonify({
                "date_range": date_range.to_dict(),
                "products": {name: record.to_dict() for name, record in result.sales_by_product.items()},
                "tiers": result.tiers.to_dict(),
            }), 200
        except AssistantError as e:
            return jsonify({"error": e.message}), 502
        except Exception as e:
            logger.exception("Sales analytics failed")
            return jsonify({"error": str(e)}), 500

    @app.route("/api/chat", methods=["POST"])
    def chat() -> tuple:
        """
        Ask the sales assistant.
        Body: { "message": "Ən çox satılan 3 məhsul hansıdır?", "startDate": optional, "endDate": optional }
        """
        try:
            data = request.get_json(silent=True) or {}
            message = data.get("message", "")
            if not str(message).strip():
                return jsonify({"error": "Message is required"}), 400
            try:
                date_range = _date_range_from(data)
            except ValueError:
                return jsonify({"error": "startDate and endDate must be valid dates (YYYY-MM-DD or DD.MM.YYYY)"}), 400

            reply = get_assistant().chat(str(message), date_range=date_range)
            return jsonify({"response": reply, "message": message}), 200
        except Exception as e:
            logger.exception("Chat failed")
            return jsonify({"error": str(e)}), 500

    @app.route("/api/chat/validate", methods=["POST"])
    def validate_answer() -> tuple:
        """
        Run the plausibility checks on an answer.
        Body: { "response": "...", "startDate": "YYYY-MM-DD", "endDate": "YYYY-MM-DD" }
        """
        try:
            data = request.get_json(silent=True) or {}
            try:
                date_range = _date_range_from(data)
            except ValueError:
                return jsonify({"error": "startDate and endDate must be valid dates (YYYY-MM-DD or DD.MM.YYYY)"}), 400
            if date_range is None:
                return jsonify({"error": "startDate and endDate are required"}), 400
            assistant = get_assistant()
            result = assistant.analyze(date_range)
            validation = assistant.validator.check(str(data.get("response", "")), result.sales_by_product, date_range)
            return jsonify({"validation": validation.to_dict()}), 200
        except AssistantError as e:
            return jsonify({"error": e.message}), 502
        except Exception as e:
            logger.exception("Validation failed")
            return jsonify({"error": str(e)}), 500

    return app
