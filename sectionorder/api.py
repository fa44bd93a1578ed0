"""
Small JSON client for the school administration API.
Requests are blocking ``urllib`` calls; the async helpers run them in the
default executor so the UI loop keeps running.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from . import __version__
from .errors import GatewayUnavailable, ReorderRejected

logger = logging.getLogger(__name__)


class ApiClient:
    """Talks JSON to ``base_url`` with an optional bearer token."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 15):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> Optional["ApiClient"]:
        """Build a client from the ``api`` config section, or None if no URL is set."""
        base_url = config.get_setting('api.base_url')
        if not base_url:
            return None
        return cls(
            base_url,
            token=config.get_setting('api.token'),
            timeout=float(config.get_setting('api.timeout', 15)),
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            'User-Agent': f'sectionorder/{__version__}',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def request_json(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(params)}"
        body = json.dumps(payload).encode('utf-8') if payload is not None else None
        request = Request(url, data=body, headers=self._headers(), method=method)

        try:
            with urlopen(request, timeout=self.timeout) as response:
                raw = response.read().decode('utf-8')
        except HTTPError as e:
            message = _error_message(e)
            logger.warning(f"{method} {url} failed with HTTP {e.code}: {message}")
            raise ReorderRejected(message, status=e.code) from e
        except (URLError, OSError) as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise GatewayUnavailable(f"Cannot reach {self.base_url}: {e}") from e

        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ReorderRejected(f"Invalid JSON from server: {e}") from e

    async def request_json_async(self, method: str, path: str, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self.request_json(method, path, **kwargs)
        )


def _error_message(error: HTTPError) -> str:
    try:
        data = json.loads(error.read().decode('utf-8'))
    except Exception:
        return error.reason or f"HTTP {error.code}"
    if isinstance(data, dict) and data.get('message'):
        return str(data['message'])
    return error.reason or f"HTTP {error.code}"
