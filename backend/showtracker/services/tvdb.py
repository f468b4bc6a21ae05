"""
TheTVDB v4 API client.

Handles login (API key + user PIN -> bearer token) and typed lookups for shows,
episodes and search. Every payload goes through a ``from_wire`` step that maps
the provider's loosely typed JSON to a strict model.

Example::
    client = TvdbClient(api_key, pin="1234")
    await client.login()
    show = await client.fetch_show_extended("81189")
    episodes = await client.fetch_all_episodes("81189")
"""
import httpx
from typing import List, Dict, Optional, Any
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import logging

from showtracker.core.config import settings
from showtracker.exceptions import AuthError, UpstreamError

logger = logging.getLogger(__name__)

SERIES_ID_PREFIX = "series-"


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys``, in order of precedence."""
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _name_of(value: Any) -> Optional[str]:
    # status / network come either as {"name": ...} objects or plain strings
    if isinstance(value, dict):
        return value.get("name")
    return value


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_id(value: Any) -> Optional[str]:
    """TheTVDB returns ids like "series-73255" or raw numbers; strip the prefix if present."""
    if value is None:
        return None
    as_string = str(value).strip()
    if as_string.startswith(SERIES_ID_PREFIX):
        as_string = as_string[len(SERIES_ID_PREFIX):].strip()
    return as_string or None


class TvdbShow(BaseModel):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None
    overview: Optional[str] = None
    first_aired: Optional[str] = None
    last_aired: Optional[str] = None
    status: Optional[str] = None
    network: Optional[str] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "TvdbShow":
        return cls(
            id=normalize_id(data.get("id")) or "",
            name=_first(data, "name", "title"),
            image=_first(data, "image", "image_url"),
            overview=data.get("overview"),
            first_aired=data.get("firstAired"),
            last_aired=data.get("lastAired"),
            status=_name_of(data.get("status")),
            network=_name_of(_first(data, "originalNetwork", "latestNetwork", "network")),
        )

    def cache_fields(self) -> Dict[str, Any]:
        """Fields written to the shared show cache; absent values are left out so they never clear cached ones."""
        fields = {
            "title": self.name,
            "poster": self.image,
            "overview": self.overview,
            "first_aired": self.first_aired,
            "last_aired": self.last_aired,
            "status": self.status,
            "network": self.network,
        }
        return {k: v for k, v in fields.items() if v is not None}


class TvdbEpisode(BaseModel):
    id: str
    name: Optional[str] = None
    season_number: int = 0
    number: int = 0
    air_date: Optional[str] = None
    absolute_number: Optional[int] = None
    overview: Optional[str] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "TvdbEpisode":
        return cls(
            id=str(data.get("id")),
            name=_first(data, "name", "title"),
            season_number=_to_int(_first(data, "seasonNumber", "season")) or 0,
            number=_to_int(_first(data, "number", "episodeNumber")) or 0,
            air_date=_first(data, "aired", "airDate"),
            absolute_number=_to_int(data.get("absoluteNumber")),
            overview=data.get("overview"),
        )


class TvdbSearchResult(BaseModel):
    id: str
    title: str
    image_url: Optional[str] = None
    year: Optional[int] = None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> Optional["TvdbSearchResult"]:
        """Returns None for entries missing an id or a name."""
        result_id = normalize_id(_first(data, "tvdb_id", "id"))
        name = _first(data, "name", "title")
        if not result_id or not name:
            return None
        return cls(
            id=result_id,
            title=name,
            image_url=_first(data, "image_url", "image"),
            year=_to_int(data.get("year")),
        )


class TvdbClient:
    def __init__(
        self,
        api_key: str,
        pin: Optional[str] = None,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.pin = pin
        self.token = token
        self.base_url = (base_url or settings.TVDB_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.TVDB_EPISODE_PAGE_SIZE
        self.max_pages = max_pages or settings.TVDB_MAX_EPISODE_PAGES
        self.timeout = timeout or settings.TVDB_TIMEOUT

    async def login(self) -> str:
        """Exchange API key + PIN for a bearer token. Not retried."""
        body = {"apikey": self.api_key}
        if self.pin:
            body["pin"] = self.pin

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await client.post(f"{self.base_url}/login", json=body)

        if not response.is_success:
            logger.warning(f"TVDB login failed ({response.status_code})")
            raise AuthError(f"TVDB login failed ({response.status_code})", status=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = None
        token = ((payload or {}).get("data") or {}).get("token") if isinstance(payload, dict) else None
        if not token:
            raise AuthError("TVDB login response missing token", status=response.status_code)

        self.token = token
        return token

    async def ensure_token(self) -> str:
        if self.token:
            return self.token
        return await self.login()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        token = await self.ensure_token()
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            try:
                response = await client.get(
                    f"{self.base_url}{path}",
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.TransportError as e:
                logger.error(f"Error fetching {path}: {e}")
                raise

        if not response.is_success:
            logger.error(f"TVDB request failed ({response.status_code}) for {path}")
            raise UpstreamError(response.status_code, path)
        return response.json()

    async def fetch_show(self, tvdb_id: str) -> TvdbShow:
        payload = await self._request(f"/series/{tvdb_id}")
        return TvdbShow.from_wire((payload or {}).get("data") or {"id": tvdb_id})

    async def fetch_show_extended(self, tvdb_id: str) -> TvdbShow:
        payload = await self._request(f"/series/{tvdb_id}/extended", params={"short": "true"})
        return TvdbShow.from_wire((payload or {}).get("data") or {"id": tvdb_id})

    async def fetch_episodes(self, tvdb_id: str, page: int = 0) -> List[TvdbEpisode]:
        payload = await self._request(f"/series/{tvdb_id}/episodes/default", params={"page": page})
        episodes = ((payload or {}).get("data") or {}).get("episodes") or []
        return [TvdbEpisode.from_wire(e) for e in episodes if e.get("id") is not None]

    async def fetch_all_episodes(self, tvdb_id: str, max_pages: Optional[int] = None) -> List[TvdbEpisode]:
        """
        Page through the default episode order.

        A page shorter than ``page_size`` (an empty one included) is taken as
        the last page. Stops after ``max_pages`` pages regardless.
        """
        if max_pages is None:
            max_pages = self.max_pages
        episodes: List[TvdbEpisode] = []
        for page in range(max_pages):
            batch = await self.fetch_episodes(tvdb_id, page)
            episodes.extend(batch)
            if len(batch) < self.page_size:
                break
        else:
            logger.warning(f"Episode paging for {tvdb_id} stopped at the {max_pages} page limit")
        return episodes

    def is_complete(self, episodes: List[TvdbEpisode], max_pages: Optional[int] = None) -> bool:
        """False when ``fetch_all_episodes`` may have been cut short by the page limit."""
        if max_pages is None:
            max_pages = self.max_pages
        return len(episodes) < max_pages * self.page_size

    async def search_shows(self, query: str, limit: int = 15) -> List[TvdbSearchResult]:
        payload = await self._request("/search", params={"query": query, "type": "series"})
        data = (payload or {}).get("data") or []

        results = []
        for item in data:
            result = TvdbSearchResult.from_wire(item)
            if result is None:
                continue
            results.append(result)
            if len(results) >= limit:
                break
        return results
