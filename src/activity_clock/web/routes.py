"""
FastAPI routes for the Activity Clock API.

PURPOSE: Thin JSON handlers over StorageManager.
AI CONTEXT: Routes validate input and translate storage results to HTTP.

ROUTE STRUCTURE:
- /api/activityLogs        : GET/POST/DELETE one day's sessions (?date=)
- /api/activityLogs/range  : GET day logs in [from, to]
- /api/activityNames       : GET/POST known activity names
- /api/habits/{date}       : GET/POST one day's habit data
- /api/habits              : GET habit data in [from, to]
- /api/login, /api/auth-check : session cookie (auth_router, unguarded)

STATUS CODES:
- 400: invalid date, range or body
- 401: auth enabled and no valid session cookie
- 500: storage write failed
"""

from __future__ import annotations

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..auth import check_password, create_token, require_auth, verify_token
from ..config import Config
from ..models import Session
from ..storage import StorageManager
from ..timekeys import is_day_key

__all__ = [
    "router",
    "auth_router",
    "get_storage",
]

router = APIRouter(dependencies=[Depends(require_auth)])
auth_router = APIRouter()

DATE_FORMAT = "YYYY-MM-DD"

# =============================================================================
# Dependency Factory Functions
# =============================================================================


def get_storage() -> StorageManager:
    """
    Create and return a StorageManager instance for data access.

    Creates a new StorageManager each time so every request reads the
    current files. Tests replace it through app.dependency_overrides.

    Returns:
        StorageManager over Config.get_storage_dir().
    """
    return StorageManager()


StorageDep = Annotated[StorageManager, Depends(get_storage)]

# =============================================================================
# Helpers
# =============================================================================


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _json_body(request: Request) -> Any:
    """Parsed JSON body; {} for an empty body; raises ValueError when invalid."""
    raw = await request.body()
    if not raw:
        return {}
    return json.loads(raw)


def _parse_session(payload: Any) -> Session | None:
    """
    Validate a session payload.

    Accepts {session: {...}} or the flat {start, end, activity} form.
    Returns None unless start and end parse, end > start and the trimmed
    activity is non-empty.
    """
    if not isinstance(payload, dict):
        return None
    raw = payload.get("session", payload)
    if not isinstance(raw, dict):
        return None
    activity = raw.get("activity")
    if not isinstance(activity, str) or not activity.strip():
        return None
    try:
        session = Session.from_dict({**raw, "activity": activity.strip()})
    except (KeyError, ValueError, TypeError):
        return None
    if session.end <= session.start:
        return None
    return session


def _valid_range(from_date: str | None, to_date: str | None) -> bool:
    return is_day_key(from_date) and is_day_key(to_date) and from_date <= to_date  # type: ignore[operator]


# =============================================================================
# Activity Logs
# =============================================================================


@router.get("/api/activityLogs", response_model=None)
async def get_activity_log(storage: StorageDep, date: str | None = None) -> dict[str, Any] | JSONResponse:
    """
    Fetch one day's log.

    Returns:
        {date, sessions}; an unknown day answers with an empty list.
    """
    if not is_day_key(date):
        return _error(400, f"Missing or invalid date. Use ?date={DATE_FORMAT}")
    return storage.get_day_log(date)  # type: ignore[arg-type]


@router.post("/api/activityLogs", response_model=None)
async def append_activity_session(
    request: Request, storage: StorageDep, date: str | None = None
) -> dict[str, Any] | JSONResponse:
    """
    Append a session to a day, creating the day's log when missing.

    Body:
        {"session": {"start": ISO, "end": ISO, "activity": str}}

    Returns:
        The updated {date, sessions} document.
    """
    if not is_day_key(date):
        return _error(400, f"Missing or invalid date. Use ?date={DATE_FORMAT}")
    try:
        payload = await _json_body(request)
    except ValueError:
        return _error(400, "Invalid JSON body")
    if not isinstance(payload, dict) or not isinstance(payload.get("session"), dict):
        return _error(400, "Invalid session { start, end, activity }")
    session = _parse_session(payload)
    if session is None:
        return _error(400, "Invalid session { start, end, activity }")

    doc = storage.append_session(date, session)  # type: ignore[arg-type]
    if doc is None:
        return _error(500, "Failed to save session")
    return doc


@router.delete("/api/activityLogs", response_model=None)
async def delete_activity_session(
    request: Request, storage: StorageDep, date: str | None = None
) -> dict[str, Any] | JSONResponse:
    """
    Remove one session matching the exact saved values.

    Body:
        {"session": {start, end, activity}} or {start, end, activity}

    Returns:
        The current {date, sessions} document, unchanged when nothing
        matched.
    """
    if not is_day_key(date):
        return _error(400, f"Missing or invalid date. Use ?date={DATE_FORMAT}")
    try:
        payload = await _json_body(request)
    except ValueError:
        return _error(400, "Invalid JSON body")
    session = _parse_session(payload)
    if session is None:
        return _error(
            400,
            "Invalid session { start, end, activity } for DELETE. "
            "You must send the exact values that were saved.",
        )

    doc = storage.delete_session(date, session)  # type: ignore[arg-type]
    if doc is None:
        return _error(500, "Failed to delete session")
    return doc


@router.get("/api/activityLogs/range", response_model=None)
async def list_activity_logs(request: Request, storage: StorageDep) -> dict[str, Any] | JSONResponse:
    """
    Fetch stored day logs in an inclusive range.

    Returns:
        {"data": {date: {date, sessions}}} with missing days omitted.
    """
    from_key = request.query_params.get("from")
    to_key = request.query_params.get("to")
    if not _valid_range(from_key, to_key):
        return _error(400, f"Use ?from={DATE_FORMAT}&to={DATE_FORMAT} with from<=to")
    return {"data": storage.list_day_logs(from_key, to_key)}  # type: ignore[arg-type]


# =============================================================================
# Activity Names
# =============================================================================


@router.get("/api/activityNames")
async def list_activity_names(storage: StorageDep) -> list[str]:
    """All known activity names, sorted."""
    return storage.load_activity_names()


@router.post("/api/activityNames", response_model=None)
async def add_activity_name(request: Request, storage: StorageDep) -> dict[str, Any] | JSONResponse:
    """
    Record an activity name (idempotent, first letter capitalized).

    Body:
        {"name": str}
    """
    try:
        payload = await _json_body(request)
    except ValueError:
        return _error(400, "Invalid JSON body")
    raw = payload.get("name") if isinstance(payload, dict) else None
    if not isinstance(raw, str) or not raw.strip():
        return _error(400, "Body must be { name: string }")

    name = storage.ensure_activity_name(raw)
    if name is None:
        return _error(500, "Failed to save activity name")
    return {"ok": True, "name": name}


# =============================================================================
# Habits
# =============================================================================


@router.get("/api/habits", response_model=None)
async def list_habits(request: Request, storage: StorageDep) -> dict[str, Any] | JSONResponse:
    """
    Fetch habit data in an inclusive range.

    Returns:
        {"data": {date: {...}}} with missing days omitted.
    """
    from_key = request.query_params.get("from")
    to_key = request.query_params.get("to")
    if not _valid_range(from_key, to_key):
        return _error(400, f"Use ?from={DATE_FORMAT}&to={DATE_FORMAT} with from<=to")
    return {"data": storage.list_habits(from_key, to_key)}  # type: ignore[arg-type]


@router.get("/api/habits/{date}", response_model=None)
async def get_habit_day(date: str, storage: StorageDep) -> dict[str, Any] | JSONResponse:
    """One day's habit data as {"data": {...}} ({} when absent)."""
    if not is_day_key(date):
        return _error(400, f"Invalid date. Use {DATE_FORMAT}")
    return {"date": date, "data": storage.get_habit_data(date)}


@router.post("/api/habits/{date}", response_model=None)
async def put_habit_day(date: str, request: Request, storage: StorageDep) -> dict[str, Any] | JSONResponse:
    """
    Replace one day's habit data.

    Body:
        {"data": {...}}
    """
    if not is_day_key(date):
        return _error(400, f"Invalid date. Use {DATE_FORMAT}")
    try:
        payload = await _json_body(request)
    except ValueError:
        return _error(400, "Invalid JSON body")
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return _error(400, "Body must be { data: { ... } }")

    stored = storage.put_habit_data(date, data)
    if stored is None:
        return _error(500, "Failed to save habits")
    return {"ok": True, "date": date, "data": stored}


# =============================================================================
# Auth
# =============================================================================


@auth_router.post("/api/login", response_model=None)
async def login(request: Request) -> dict[str, Any] | JSONResponse:
    """
    Exchange the password for an HTTP-only session cookie.

    Body:
        {"password": str}

    Returns:
        {"ok": true} with Set-Cookie, or 401 {"ok": false}. When auth is
        not configured the call succeeds without a cookie.
    """
    if not Config.is_auth_enabled():
        return {"ok": True, "auth": False}

    try:
        payload = await _json_body(request)
    except ValueError:
        payload = {}
    password = payload.get("password") if isinstance(payload, dict) else None
    if not isinstance(password, str) or not check_password(password):
        return JSONResponse(status_code=401, content={"ok": False, "error": "Invalid password"})

    days = Config.get_session_days()
    response = JSONResponse(content={"ok": True})
    response.set_cookie(
        key=Config.SESSION_COOKIE_NAME,
        value=create_token(days=days),
        max_age=days * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="strict",
    )
    return response


@auth_router.get("/api/auth-check", response_model=None)
async def auth_check(request: Request) -> dict[str, Any] | JSONResponse:
    """200 {"ok": true} when the session cookie is valid (or auth is off), else 401."""
    if not Config.is_auth_enabled():
        return {"ok": True, "auth": False}
    if verify_token(request.cookies.get(Config.SESSION_COOKIE_NAME)) is None:
        return JSONResponse(status_code=401, content={"ok": False})
    return {"ok": True}
