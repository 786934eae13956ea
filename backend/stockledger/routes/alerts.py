# Overview: Flask API routes for low-stock alerts.

from flask import Blueprint, jsonify, g

from ..errors import LedgerError
from ..services import alert_service
from ..services.alert_service import AlertNotFoundError
from ..decorators import require_session


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_session
def list_alerts_route():
    """Open (non-dismissed) low-stock alerts for the current business."""
    alerts = alert_service.list_open_alerts(g.business_id)
    return jsonify({"alerts": [a.to_dict() for a in alerts]}), 200


@alerts_bp.post("/<int:alert_id>/dismiss")
@require_session
def dismiss_alert_route(alert_id: int):
    try:
        alert = alert_service.dismiss_alert(alert_id, g.business_id)
    except AlertNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"alert": alert.to_dict()}), 200
