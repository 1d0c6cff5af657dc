"""
GPS tracker vendor client.
Logs in per device IMEI and reads the last reported position. Servers are
tried in order; any failure on one server moves on to the next.
"""
import asyncio
import random
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import httpx
import structlog


logger = structlog.get_logger()


# Fallback map positions per site code
SITE_COORDINATES: Dict[str, Dict[str, float]] = {
    "HQ": {"lat": -29.3387, "lng": 27.4618},
    "MAK": {"lat": -29.1929, "lng": 27.5681},
    "MAS": {"lat": -29.3902, "lng": 27.5603},
    "SEB": {"lat": -30.2921, "lng": 27.8153},
    "MAT": {"lat": -29.6181, "lng": 27.5653},
    "LEB": {"lat": -30.1793, "lng": 27.9874},
    "SEH": {"lat": -29.9080, "lng": 29.1169},
    "QN": {"lat": -29.9657, "lng": 28.7381},
    "TY": {"lat": -29.1520, "lng": 27.7428},
    "BFN": {"lat": -29.1164, "lng": 26.2155},
    "JHB": {"lat": -26.2050, "lng": 28.0497},
    "OTHER": {"lat": -29.3387, "lng": 27.4618},
}

JITTER_DEGREES = 0.0015


@dataclass
class TrackerPosition:
    lat: float
    lng: float
    speed: int
    timestamp: int  # unix seconds
    direction: int
    mileage: int

    def is_live(self, max_age_s: int, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.timestamp < max_age_s


def is_trackable(imei: Optional[str]) -> bool:
    return bool(imei) and len(imei) > 5


def site_position(location: Optional[str], jitter: bool = True) -> Dict[str, float]:
    """Coordinates of a site code (HQ when unknown), spread slightly so markers don't stack."""
    coords = SITE_COORDINATES.get((location or "HQ").upper(), SITE_COORDINATES["HQ"])
    if not jitter:
        return dict(coords)
    return {
        "lat": coords["lat"] + random.uniform(-JITTER_DEGREES, JITTER_DEGREES),
        "lng": coords["lng"] + random.uniform(-JITTER_DEGREES, JITTER_DEGREES),
    }


def _int(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_position(payload: dict) -> Optional[TrackerPosition]:
    """Decode a Proc_GetLastPosition reply; None when it carries no usable fix."""
    if not payload.get("m_isResultOk"):
        return None
    records = payload.get("m_arrRecord") or []
    if not records:
        return None
    rec = dict(zip(payload.get("m_arrField") or [], records[0]))
    try:
        lat = float(rec.get("dbLat") or 0)
        lng = float(rec.get("dbLon") or 0)
    except (TypeError, ValueError):
        return None
    if not lat or not lng:
        return None
    return TrackerPosition(
        lat=lat,
        lng=lng,
        speed=_int(rec.get("nSpeed")),
        timestamp=_int(rec.get("nTime")),
        direction=_int(rec.get("nDirection")),
        mileage=_int(rec.get("nMileage")),
    )


class TrackerClient:
    """Client for the tracker vendor's AppJson endpoint"""

    def __init__(
        self,
        servers: Iterable[str],
        password: str,
        timeout: float = 6.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.servers = [s.rstrip("/") for s in servers]
        self.password = password
        self.timeout = timeout
        self.transport = transport

    def _base_params(self, imei: str) -> Dict[str, str]:
        return {
            "Field": "",
            "strAppID": "",
            "strUser": imei,
            "nTimeStamp": str(int(time.time() * 1000)),
            "strRandom": "12345",
            "strSign": "",
            "strToken": "",
        }

    async def _call(self, client: httpx.AsyncClient, server: str, imei: str, cmd: str, data: str) -> dict:
        params = self._base_params(imei)
        params["Cmd"] = cmd
        params["Data"] = data
        response = await client.post(f"{server}/APP/AppJson.asp", data=params)
        response.raise_for_status()
        return response.json()

    async def _position_from(self, client: httpx.AsyncClient, server: str, imei: str) -> Optional[TrackerPosition]:
        login = await self._call(client, server, imei, "Proc_LoginIMEI", f"N'{imei}',N'{self.password}'")
        if not login.get("m_isResultOk"):
            return None
        payload = await self._call(client, server, imei, "Proc_GetLastPosition", f"N'{imei}'")
        return parse_position(payload)

    async def last_position(self, imei: str, client: Optional[httpx.AsyncClient] = None) -> Optional[TrackerPosition]:
        """Last known fix for one device, or None when no server returns one."""
        if client is None:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as own_client:
                return await self.last_position(imei, own_client)

        for server in self.servers:
            try:
                position = await self._position_from(client, server, imei)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("tracker_lookup_failed", imei=imei, server=server, error=str(e))
                continue
            if position is not None:
                return position
        return None

    async def last_positions(self, imeis: List[str]) -> Dict[str, TrackerPosition]:
        """Look up many devices concurrently; failures are simply absent from the result."""
        if not imeis:
            return {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            results = await asyncio.gather(
                *(self.last_position(imei, client) for imei in imeis),
                return_exceptions=True,
            )
        positions = {}
        for imei, result in zip(imeis, results):
            if isinstance(result, BaseException):
                logger.warning("tracker_lookup_failed", imei=imei, error=repr(result))
            elif result is not None:
                positions[imei] = result
        return positions


def tracker_client_from_settings(settings) -> TrackerClient:
    return TrackerClient(
        settings.tracker_server_list,
        settings.tracker_password,
        timeout=settings.tracker_timeout_s,
    )
