"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers para las comprobaciones de conectividad
  (`neupool doctor`).
- Facilita testeo: se puede sustituir por un cliente con `MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


async def check_endpoint(
    url: str,
    *,
    settings: AppSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bool, str]:
    """Best-effort reachability check. Any HTTP status counts as reachable."""

    try:
        async with build_async_client(settings, transport=transport) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return False, str(exc) or type(exc).__name__
