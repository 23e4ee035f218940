import logging
import os
from typing import List, Optional

import httpx
from dotenv import load_dotenv
from fastapi import HTTPException

load_dotenv()

logger = logging.getLogger("scheduling_client")

DEFAULT_TIMEOUT = 15.0


class SchedulingServiceError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class SchedulingClient:
    """
    Client for the scheduling service that stores practitioners' weekly availability.

    The service replaces a practitioner's whole block set on every save, so
    save_blocks() always sends the complete staged week.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Scheduling service unreachable ({method} {url}): {e}")
            raise SchedulingServiceError(status_code=502, detail=f"Scheduling service unreachable: {e}") from e

        if response.status_code not in (200, 201):
            logger.error(f"Scheduling service error {response.status_code} ({method} {url}): {response.text}")
            raise SchedulingServiceError(status_code=response.status_code, detail=_error_detail(response))

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"Scheduling service sent an unreadable body ({method} {url}): {response.text[:200]}")
            raise SchedulingServiceError(status_code=502, detail="Scheduling service returned an invalid response")

        if data.get("success") is False:
            raise SchedulingServiceError(status_code=400, detail=data.get("error") or "Unknown error")
        return data

    async def fetch_blocks(self, professional_id: int) -> List[dict]:
        data = await self._request("GET", "/availability", params={"professional_id": professional_id})
        blocks = data.get("blocks") or []
        if not isinstance(blocks, list):
            raise SchedulingServiceError(status_code=502, detail="Scheduling service returned an invalid block list")
        return blocks

    async def save_blocks(self, professional_id: int, records: List[dict]) -> int:
        data = await self._request(
            "POST",
            "/availability",
            json={"professional_id": professional_id, "blocks": records},
        )
        configured = data.get("configured", len(records))
        logger.info(f"Saved {configured} blocks for professional {professional_id}")
        return configured


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("error") or body.get("detail") or response.text
    return response.text


def get_scheduling_client() -> SchedulingClient:
    base_url = os.getenv("SCHEDULING_API_URL")
    api_key = os.getenv("SCHEDULING_API_KEY")
    if not base_url or not api_key:
        raise HTTPException(status_code=500, detail="Scheduling service is not configured.")
    timeout = float(os.getenv("SCHEDULING_TIMEOUT", DEFAULT_TIMEOUT))
    return SchedulingClient(base_url, api_key, timeout=timeout)
