# services/client.py
"""
Thin async client used by the counter terminal that validates tokens.

`validate()` applies the redemption to the local counters immediately and
then re-reads stats + breakdown from the API; the re-read always wins.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from core.counters import DashboardCounters
from core.tokens import TokenStats

_LOG = logging.getLogger(__name__)


class MessClientError(RuntimeError):
    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        super().__init__(body.get("error", f"HTTP {status_code}"))
        self.status_code = status_code
        self.body = body


class MessClient:
    def __init__(self, http: httpx.AsyncClient, bearer: str) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {bearer}"}
        self.counters = DashboardCounters()

    async def _call(self, method: str, path: str, **kw: Any) -> Any:
        r = await self._http.request(method, f"/api/v1{path}", headers=self._headers, **kw)
        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                body = {"error": r.text}
            raise MessClientError(r.status_code, body)
        return r.json()

    # ─────────────────────────── student side ─────────────────────── #
    async def generate_token(self, meal_type: str, meal_date: date | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"mealType": meal_type}
        if meal_date:
            body["mealDate"] = meal_date.isoformat()
        return (await self._call("POST", "/tokens", json=body))["token"]

    # ─────────────────────────── counter side ─────────────────────── #
    async def redeem(self, token_code: str, meal_date: date | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"tokenCode": token_code}
        if meal_date:
            body["mealDate"] = meal_date.isoformat()
        return await self._call("POST", "/tokens/redeem", json=body)

    async def stats(self, meal_date: date | None = None) -> TokenStats:
        params = {"meal_date": meal_date.isoformat()} if meal_date else None
        data = await self._call("GET", "/tokens/stats", params=params)
        return TokenStats(total=data["total"], used=data["used"], unused=data["unused"])

    async def breakdown(self, meal_date: date | None = None) -> dict[str, int]:
        params = {"meal_date": meal_date.isoformat()} if meal_date else None
        return await self._call("GET", "/tokens/breakdown", params=params)

    async def refresh(self, meal_date: date | None = None) -> DashboardCounters:
        self.counters.reconcile(await self.stats(meal_date), await self.breakdown(meal_date))
        return self.counters

    async def validate(self, token_code: str, meal_date: date | None = None) -> dict[str, Any]:
        """Redeem `token_code`, bump counters optimistically, then reconcile."""
        result = await self.redeem(token_code, meal_date)
        self.counters.apply_redemption(result["mealType"])
        _LOG.info("validated %s (%s)", token_code, result["mealType"])
        await self.refresh(meal_date)
        return result
