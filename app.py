"""
Room Status Sync API
JSON endpoints for the manual room status sync and the availability read.

Security Features:
- CSRF protection via Flask-WTF on state-changing requests
- Rate limiting on sync endpoints
- Security headers on every response
"""
import os
import logging

from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, generate_csrf
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

import availability
import config
import database
import date_utils
from reconciliation import Reconciler, ACTION_CRITICAL
from repositories import RepositoryError, RoomNotFoundError

config.configure_logging()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.get_secret_key()
app.config['DB_PATH'] = config.DB_PATH

# Session security configuration (CSRF tokens live in the session)
app.config['SESSION_COOKIE_SECURE'] = config.FLASK_ENV == 'production'  # HTTPS only in production
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# CSRF Protection
app.config['WTF_CSRF_TIME_LIMIT'] = 3600  # CSRF token valid for 1 hour
app.config['WTF_CSRF_SSL_STRICT'] = config.FLASK_ENV == 'production'
csrf = CSRFProtect(app)

# Rate limiting
if config.FLASK_ENV == 'testing':
    app.config['RATELIMIT_ENABLED'] = False

limiter = Limiter(
    key_func=get_remote_address,
    app=app,
    default_limits=["500 per day", "100 per hour"],
    storage_uri="memory://",
)


def get_reconciler() -> Reconciler:
    return Reconciler(db_path=app.config['DB_PATH'])


def error_response(message: str, status_code: int, **extra):
    payload = {"success": False, "error": message}
    payload.update(extra)
    return jsonify(payload), status_code


MAX_ROOM_NUMBER_LENGTH = 20


def parse_room_number(value):
    """Return (room_number, error). Oversized identifiers are rejected, never truncated."""
    room_number = str(value or "").strip()
    if len(room_number) > MAX_ROOM_NUMBER_LENGTH:
        return None, f"room_number must be at most {MAX_ROOM_NUMBER_LENGTH} characters"
    return room_number, None


def parse_as_of(value):
    """Return (date, error). Missing value means hotel-local today."""
    if value in (None, ""):
        return date_utils.get_today(), None
    parsed = date_utils.parse_date_input(str(value))
    if parsed is None:
        return None, "as_of must be a date in YYYY-MM-DD format"
    return parsed, None


def single_room_response(room_number, as_of):
    try:
        result = get_reconciler().reconcile_room(room_number, as_of)
    except RoomNotFoundError as e:
        return error_response(str(e), 404)
    except RepositoryError as e:
        logger.error(f"Sync failed for room {room_number}: {e}")
        return error_response("Room status could not be reconciled", 503)

    if result.action == ACTION_CRITICAL:
        return error_response(result.message, 409, data=result.to_dict())
    return jsonify({"success": True, "data": result.to_dict()})


# Security headers middleware
@app.after_request
def add_security_headers(response):
    """Add security headers to all responses."""
    # Prevent clickjacking
    response.headers['X-Frame-Options'] = 'DENY'
    # Prevent MIME type sniffing
    response.headers['X-Content-Type-Options'] = 'nosniff'
    # Referrer policy
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    # JSON only, nothing to embed
    response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none';"
    response.headers['Cache-Control'] = 'no-store'
    return response


# CSRF token endpoint for JavaScript requests
@app.route('/api/csrf-token', methods=['GET'])
def get_csrf_token():
    """Provide CSRF token for JavaScript API calls."""
    return jsonify({'csrf_token': generate_csrf()})


@app.post("/api/rooms/sync")
@limiter.limit("10 per minute")
def sync_rooms():
    payload = request.get_json(silent=True) or {}
    as_of, error = parse_as_of(payload.get("as_of"))
    if error:
        return error_response(error, 400)

    room_number, error = parse_room_number(payload.get("room_number"))
    if error:
        return error_response(error, 400)
    if room_number:
        return single_room_response(room_number, as_of)

    try:
        batch = get_reconciler().reconcile_all(as_of)
    except RepositoryError as e:
        logger.error(f"Sync failed: {e}")
        return error_response("Room status could not be reconciled", 503)

    return jsonify({"success": True, "data": batch.to_dict()})


@app.post("/api/rooms/<room_number>/sync")
@limiter.limit("30 per minute")
def sync_room(room_number):
    payload = request.get_json(silent=True) or {}
    as_of, error = parse_as_of(payload.get("as_of") or request.args.get("as_of"))
    if error:
        return error_response(error, 400)
    room_number, error = parse_room_number(room_number)
    if error:
        return error_response(error, 400)
    return single_room_response(room_number, as_of)


@app.get("/api/rooms/status")
def rooms_status():
    as_of, error = parse_as_of(request.args.get("as_of", "").strip())
    if error:
        return error_response(error, 400)

    try:
        board = availability.room_status_board(as_of, db_path=app.config['DB_PATH'])
    except RepositoryError as e:
        logger.error(f"Status board failed: {e}")
        return error_response("Room status could not be read", 503)

    return jsonify({
        "success": True,
        "data": {
            "as_of": as_of.isoformat(),
            "rooms": board,
            "out_of_sync": [room["room_number"] for room in board if not room["in_sync"]],
        },
    })


@app.get("/api/rooms/availability")
def rooms_availability():
    as_of, error = parse_as_of(request.args.get("as_of", "").strip())
    if error:
        return error_response(error, 400)

    check_in = date_utils.parse_date_input(request.args.get("check_in", "").strip())
    check_out = date_utils.parse_date_input(request.args.get("check_out", "").strip())
    if not check_in or not check_out:
        return error_response("check_in and check_out are required (YYYY-MM-DD)", 400)
    if check_in >= check_out:
        return error_response("check_out must be after check_in", 400)
    if check_in < as_of:
        return error_response("check_in cannot be in the past", 400)

    try:
        rooms = availability.find_bookable_rooms(check_in, check_out, as_of, db_path=app.config['DB_PATH'])
    except RepositoryError as e:
        logger.error(f"Availability read failed: {e}")
        return error_response("Availability could not be read", 503)

    return jsonify({
        "success": True,
        "data": {
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "available_count": len(rooms),
            "rooms": rooms,
        },
    })


def warn_if_missing_tables():
    required_tables = {"rooms", "bookings", "activity_logs"}
    conn = database.connect_db(app.config['DB_PATH'])
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table'"
    ).fetchall()
    conn.close()
    existing = {row["name"] for row in rows}
    missing = sorted(required_tables - existing)
    if missing:
        missing_list = ", ".join(missing)
        logger.warning(f"Missing tables: {missing_list}")
        logger.warning("Run: python upgrade_db.py")


# Error handlers
@app.errorhandler(429)
def ratelimit_handler(e):
    return error_response("Too many requests. Please try again later.", 429)


@app.errorhandler(400)
def bad_request_handler(e):
    return error_response("Bad request", 400)


@app.errorhandler(404)
def not_found_handler(e):
    return error_response("Not found", 404)


@app.errorhandler(405)
def method_not_allowed_handler(e):
    return error_response("Method not allowed", 405)


@app.errorhandler(500)
def internal_error_handler(e):
    return error_response("Internal server error", 500)


if __name__ == "__main__":
    is_production = config.FLASK_ENV == 'production'

    if not is_production:
        logger.info(f"[DEV MODE] Database: {app.config['DB_PATH']}")
        logger.warning("[DEV MODE] Debug mode enabled - DO NOT USE IN PRODUCTION")
        warn_if_missing_tables()

    # Only enable debug mode in development
    port = int(os.environ.get("PORT", "5000"))
    app.run(debug=not is_production, host='127.0.0.1', port=port)
