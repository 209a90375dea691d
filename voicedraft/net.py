"""HTTP helpers shared by the speech and LLM backends."""

import aiohttp

from .exceptions import RequestFailedError

# Every backend call is bounded by this total timeout.
DEFAULT_TIMEOUT_SECONDS = 30.0


async def raise_for_status(response: aiohttp.ClientResponse) -> None:
    """Turn a non-2xx response into RequestFailedError carrying status and body."""
    if 200 <= response.status < 300:
        return
    body = await response.text()
    raise RequestFailedError(f"HTTP {response.status}: {body}",
                             status=response.status, body=body)
