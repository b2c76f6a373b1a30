# Overview: Flask API routes for cash register sessions; parses input and returns JSON responses.

# backend/cashdesk/routes/registers.py
"""
Cash Register Session API Routes

DESIGN:
- Session lifecycle: open -> close (immutable once closed)
- The acting user (X-User-Id) owns the session they open
- Summary is read-only and can be requested any number of times

SECURITY:
- Any active user can open and close their own session
- Closing somebody else's session requires the admin role (checked in the service)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import register_service
from ..validation import parse_id
from ..decorators import require_user


registers_bp = Blueprint("registers", __name__, url_prefix="/api/cash-registers")


@registers_bp.post("/open")
@require_user
def open_session_route():
    """
    Open a session for the acting user.

    Request body:
    {
        "opening_amount": "100.00",
        "exchange_rate": "17.2500"  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        session = register_service.open_session(
            g.current_user.id,
            data.get("opening_amount", 0),
            data.get("exchange_rate"),
        )
        return jsonify({"session": session.to_dict()}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open cash register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/<int:session_id>/close")
@require_user
def close_session_route(session_id: int):
    """
    Close a session and return its reconciliation.

    Request body:
    {
        "closing_amount": "150.00"
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("closing_amount") is None:
            return jsonify({"error": "closing_amount required"}), 400

        summary = register_service.close_session(
            session_id,
            data["closing_amount"],
            actor_user_id=g.current_user.id,
        )
        return jsonify({"summary": summary.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close cash register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/open")
@require_user
def open_sessions_route():
    """
    Open sessions.

    Query params:
    - user_id: int (optional) - only that user's open session (or null)
    """
    try:
        user_id = request.args.get("user_id")
        if user_id is not None:
            session = register_service.get_open_session_for_user(parse_id(user_id, "user_id"))
            return jsonify({"session": session.to_dict() if session else None}), 200

        sessions = register_service.get_open_sessions()
        return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load open sessions")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/<int:session_id>/summary")
@require_user
def session_summary_route(session_id: int):
    try:
        summary = register_service.get_summary(session_id)
        return jsonify({"summary": summary.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build session summary")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("")
@registers_bp.get("/")
@require_user
def list_sessions_route():
    """
    List sessions, newest first.

    Query params:
    - start, end: ISO-8601 (optional, both or neither)
    """
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        if start or end:
            sessions = register_service.get_sessions_by_date_range(start, end)
        else:
            sessions = register_service.list_sessions()
        return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sessions")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/<int:session_id>")
@require_user
def get_session_route(session_id: int):
    try:
        session = register_service.get_session(session_id)
        return jsonify({"session": session.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
