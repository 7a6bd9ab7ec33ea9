"""api-football REST client (fixtures, rounds). No retry policy: failures propagate to the caller."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from duelmarkets.errors import MalformedOracleData

log = structlog.get_logger(__name__)

API_FOOTBALL_BASE = "https://v3.football.api-sports.io"


class FootballApiClient:
    """Thin synchronous wrapper over the api-football v3 endpoints the oracle needs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = API_FOOTBALL_BASE,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"x-apisports-key": api_key, "Cache-Control": "no-store"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> FootballApiClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _get(self, path: str, params: dict[str, Any]) -> list[Any]:
        resp = self._client.get(path, params=params)
        resp.raise_for_status()
        data = resp.json()
        remaining = resp.headers.get("x-ratelimit-requests-remaining")
        if remaining is not None:
            log.debug("api_rate", path=path, remaining=remaining)
        if not isinstance(data, dict):
            raise MalformedOracleData(f"{path}: unexpected response body")
        response = data.get("response")
        if response is None:
            return []
        if not isinstance(response, list):
            raise MalformedOracleData(f"{path}: response is not a list")
        return response

    def get_fixture(self, fixture_id: int) -> dict[str, Any]:
        """Return the raw fixture object for one match."""
        rows = self._get("/fixtures", {"id": fixture_id})
        if not rows:
            raise MalformedOracleData(f"game {fixture_id} not found")
        return rows[0]

    def get_rounds(self, league: int, season: int) -> list[str]:
        """Round names of a league season, in chronological order."""
        return [str(r) for r in self._get("/fixtures/rounds", {"league": league, "season": season})]

    def get_round_fixtures(self, league: int, season: int, round_name: str) -> list[dict[str, Any]]:
        return self._get(
            "/fixtures",
            {"league": league, "season": season, "round": round_name, "timezone": "UTC"},
        )
