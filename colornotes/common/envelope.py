from datetime import datetime, timezone
from flask import jsonify


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def success(data=None, status=200):
    return jsonify({"success": True, "data": data, "timestamp": _timestamp()}), status


def failure(message, status, code, details=None):
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return jsonify({"success": False, "error": error, "timestamp": _timestamp()}), status
