"""
HTTP persistence client for the Activity Clock API.

PURPOSE: Implement the persistence Protocols over the FastAPI routes.
AI CONTEXT: One long-lived httpx.AsyncClient per tracker; the login cookie
rides in its cookie jar.

ENDPOINTS USED:
    GET/POST/DELETE /api/activityLogs?date=YYYY-MM-DD
    GET             /api/activityLogs/range?from=&to=
    GET/POST        /api/activityNames
    GET/POST        /api/habits/{date}
    GET             /api/habits?from=&to=
    POST            /api/login
    GET             /api/auth-check

ERROR MAPPING:
- Connection/timeout errors -> PersistenceError (status_code None)
- Non-2xx responses         -> PersistenceError(status_code=<status>)
- Unparseable JSON          -> PersistenceError

USAGE:
    async with HttpPersistenceClient("http://127.0.0.1:8000") as client:
        log = await client.get_day("2025-12-01")
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from .config import Config
from .errors import PersistenceError
from .models import DayLog, HabitDay, Session

__all__ = ["HttpPersistenceClient"]

logger = logging.getLogger(__name__)


class HttpPersistenceClient:
    """
    Async client for day logs, habits and activity names.

    Implements both PersistenceClient and ActivityNamesClient.

    Args:
        base_url: API root. Default: Config.get_api_url()
        timeout: Request timeout in seconds. Default: Config.REQUEST_TIMEOUT_SECONDS
        session_token: Login token to send as the session cookie.
        transport: Optional httpx transport (e.g. httpx.ASGITransport in tests).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        session_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or Config.get_api_url()).rstrip("/")
        cookies = {Config.SESSION_COOKIE_NAME: session_token} if session_token else None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or Config.REQUEST_TIMEOUT_SECONDS, connect=5.0),
            cookies=cookies,
            transport=transport,
        )

    async def __aenter__(self) -> HttpPersistenceClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @property
    def session_token(self) -> str | None:
        """Current session cookie value, if any."""
        return self._client.cookies.get(Config.SESSION_COOKIE_NAME)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            PersistenceError: On transport failure, error status or bad JSON.
        """
        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"{method} {path} failed: HTTP {status}")
            raise PersistenceError(f"HTTP {status} from {method} {path}", status_code=status) from e
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise PersistenceError(f"Timeout on {method} {path}") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise PersistenceError(f"Request failed: {method} {path}: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from {method} {path}") from e

    # =========================================================================
    # DAY LOGS
    # =========================================================================

    async def get_day(self, date: str) -> DayLog:
        data = await self._request("GET", "/api/activityLogs", params={"date": date})
        return self._day_log(data, date)

    async def append_session(self, date: str, session: Session) -> DayLog:
        data = await self._request(
            "POST", "/api/activityLogs", params={"date": date}, json={"session": session.to_dict()}
        )
        return self._day_log(data, date)

    async def delete_session(self, date: str, session: Session) -> DayLog:
        data = await self._request(
            "DELETE", "/api/activityLogs", params={"date": date}, json={"session": session.to_dict()}
        )
        return self._day_log(data, date)

    async def list_day_range(self, from_date: str, to_date: str) -> dict[str, DayLog]:
        body = await self._request(
            "GET", "/api/activityLogs/range", params={"from": from_date, "to": to_date}
        )
        raw = (body or {}).get("data") or {}
        return {date: self._day_log(doc, date) for date, doc in raw.items()}

    @staticmethod
    def _day_log(data: Any, date: str) -> DayLog:
        if data is not None and not isinstance(data, dict):
            raise PersistenceError(f"Unexpected day log payload for {date}")
        try:
            return DayLog.from_dict(data, date=date)
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceError(f"Malformed day log for {date}: {e}") from e

    # =========================================================================
    # HABITS
    # =========================================================================

    async def get_habit_day(self, date: str) -> HabitDay:
        body = await self._request("GET", f"/api/habits/{date}")
        return HabitDay.from_dict(body, date=date)

    async def put_habit_day(self, date: str, data: dict[str, Any]) -> HabitDay:
        body = await self._request("POST", f"/api/habits/{date}", json={"data": data})
        return HabitDay.from_dict(body, date=date)

    async def list_habit_range(self, from_date: str, to_date: str) -> dict[str, dict[str, Any]]:
        body = await self._request("GET", "/api/habits", params={"from": from_date, "to": to_date})
        raw = (body or {}).get("data") or {}
        return {date: dict(data) for date, data in raw.items() if isinstance(data, dict)}

    # =========================================================================
    # ACTIVITY NAMES
    # =========================================================================

    async def list_names(self) -> list[str]:
        body = await self._request("GET", "/api/activityNames")
        return sorted(str(n) for n in body or [] if n)

    async def ensure_name(self, name: str) -> None:
        await self._request("POST", "/api/activityNames", json={"name": name})

    # =========================================================================
    # AUTH
    # =========================================================================

    async def login(self, password: str) -> str | None:
        """
        Exchange the password for a session cookie.

        Returns:
            The session token (also kept in this client's cookie jar), or
            None when the server runs without auth.

        Raises:
            PersistenceError: status_code 401 on a wrong password.
        """
        await self._request("POST", "/api/login", json={"password": password})
        return self.session_token

    async def auth_check(self) -> bool:
        """True when the current cookie is accepted (or auth is off)."""
        try:
            await self._request("GET", "/api/auth-check")
        except PersistenceError as e:
            if e.status_code == 401:
                return False
            raise
        return True
