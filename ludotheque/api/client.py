"""ScreenScraper API client implementation."""

import logging
import time
from enum import Enum
from typing import Dict, Any, List, Optional
from urllib.parse import urlencode

import httpx
from lxml import etree

from .error_handler import (
    handle_http_status,
    retry_with_backoff,
    RetryableAPIError,
    SkippableAPIError
)
from .response_parser import (
    validate_response,
    parse_game_info,
    parse_search_results,
    extract_error_message,
    ResponseError
)

logger = logging.getLogger(__name__)


class APIEndpoint(Enum):
    """ScreenScraper API endpoints."""
    JEU_INFOS = 'jeuInfos.php'
    JEU_RECHERCHE = 'jeuRecherche.php'


class ScreenScraperClient:
    """
    Client for ScreenScraper API.

    Handles authentication, retries and response parsing. The HTTP
    connection pool belongs to the caller.
    """

    BASE_URL = "https://api.screenscraper.fr/api2"

    def __init__(self, config: Dict[str, Any], client: httpx.AsyncClient):
        """
        Initialize API client.

        Args:
            config: Configuration dictionary with screenscraper credentials
            client: httpx.AsyncClient used for every request
        """
        credentials = config.get('screenscraper') or {}
        self.devid = credentials.get('devid') or ''
        self.devpassword = credentials.get('devpassword') or ''
        self.softname = credentials.get('softname') or 'ludotheque'
        self.ssid = credentials.get('user_id') or ''
        self.sspassword = credentials.get('user_password') or ''

        api = config.get('api', {})
        self.request_timeout = api.get('request_timeout', 30)
        self.max_retries = api.get('max_retries', 1)
        self.retry_backoff = api.get('retry_backoff_seconds', 5)
        self._timeout = httpx.Timeout(
            connect=5.0,
            read=self.request_timeout,
            write=5.0,
            pool=5.0
        )

        self.client = client
        self.request_count = 0

    @property
    def enabled(self) -> bool:
        """True when developer credentials are configured."""
        return bool(self.devid and self.devpassword)

    def _build_redacted_url(self, url: str, params: Dict[str, Any]) -> str:
        """Build URL with credentials redacted for logging."""
        redacted_params = params.copy()
        redacted_params['devpassword'] = 'redacted'
        if redacted_params.get('sspassword'):
            redacted_params['sspassword'] = 'redacted'
        query_string = urlencode(redacted_params)
        return f"{url}?{query_string}"

    def _auth_params(self) -> Dict[str, Any]:
        params = {
            'devid': self.devid,
            'devpassword': self.devpassword,
            'softname': self.softname,
            'output': 'xml',
        }
        if self.ssid:
            params['ssid'] = self.ssid
            params['sspassword'] = self.sspassword
        return params

    async def _request(
        self,
        endpoint: APIEndpoint,
        params: Dict[str, Any],
        context: str
    ) -> etree._Element:
        """
        Perform one GET against an endpoint and return the parsed XML root.

        Raises:
            FatalAPIError: Credentials, quota or blacklist errors
            RetryableAPIError: Network failures, rate limits, 5xx
            SkippableAPIError: Not found, malformed request or response
        """
        url = f"{self.BASE_URL}/{endpoint.value}"
        query = {**self._auth_params(), **params}

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"API Request ({endpoint.name}): {self._build_redacted_url(url, query)}")

        start_time = time.monotonic()
        try:
            response = await self.client.get(url, params=query, timeout=self._timeout)
        except httpx.TimeoutException:
            raise RetryableAPIError("Request timeout")
        except httpx.HTTPError as e:
            raise RetryableAPIError(f"Network error: {e}")
        self.request_count += 1

        if logger.isEnabledFor(logging.DEBUG):
            elapsed = time.monotonic() - start_time
            logger.debug(f"API Response: {response.status_code} in {elapsed:.2f}s")

        handle_http_status(response.status_code, context=context)

        try:
            root = validate_response(response.content)
        except ResponseError as e:
            raise SkippableAPIError(f"Invalid response: {e}")

        error_msg = extract_error_message(root)
        if error_msg:
            raise SkippableAPIError(f"API error: {error_msg}")

        return root

    async def query_game_info(
        self,
        systemeid: int,
        romnom: str,
        romtaille: Optional[int] = None,
        md5: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Query jeuInfos.php by filename, optionally with size and digest.

        Args:
            systemeid: ScreenScraper system ID
            romnom: ROM filename (or stem)
            romtaille: File size in bytes
            md5: Lower-case MD5 hex digest

        Returns:
            Parsed game data or None when the response has no game

        Raises:
            APIError subclasses, see _request()
        """
        params: Dict[str, Any] = {
            'systemeid': systemeid,
            'romtype': 'rom',
            'romnom': romnom,
        }
        if romtaille is not None:
            params['romtaille'] = romtaille
        if md5:
            params['md5'] = md5

        async def make_request():
            root = await self._request(APIEndpoint.JEU_INFOS, params, romnom)
            return parse_game_info(root)

        return await retry_with_backoff(
            make_request,
            max_attempts=self.max_retries,
            initial_delay=self.retry_backoff,
            backoff_factor=2.0,
            context=f"jeuInfos {romnom}"
        )

    async def search_games(
        self,
        recherche: str,
        systemeid: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Free-text search using jeuRecherche.php.

        Args:
            recherche: Search text
            systemeid: Restrict the search to one system when given

        Returns:
            List of game data dictionaries in server order (may be empty)

        Raises:
            APIError subclasses, see _request()
        """
        params: Dict[str, Any] = {'recherche': recherche}
        if systemeid:
            params['systemeid'] = systemeid

        async def make_request():
            root = await self._request(APIEndpoint.JEU_RECHERCHE, params, recherche)
            return parse_search_results(root)

        return await retry_with_backoff(
            make_request,
            max_attempts=self.max_retries,
            initial_delay=self.retry_backoff,
            backoff_factor=2.0,
            context=f"jeuRecherche '{recherche}'"
        )
