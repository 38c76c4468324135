"""Shared HTTP helper for market-data tools."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

DEFAULT_TIMEOUT_SECONDS = 20.0


def timeout_for(extra: Dict[str, Any]) -> float:
    value = extra.get("http_timeout")
    return float(value) if value else DEFAULT_TIMEOUT_SECONDS


async def get_json(
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url, params=params, headers=headers)
    if response.status_code >= 400:
        raise RuntimeError(f"Request failed with status code: {response.status_code}")
    return response.json()


async def get_text(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url, headers=headers)
    if response.status_code >= 400:
        raise RuntimeError(f"Request failed with status code: {response.status_code}")
    return response.text
