"""
Archivist Client — REST API for campaigns, records, lore and links (Async)

Talks to the Archivist campaign-management service over JSON/HTTP.

Requires:
  - ARCHIVIST_API_KEY: Your Archivist API key (sent as `x-api-key`)
  - ARCHIVIST_BASE_URL: API base URL (default: https://api.myarchivist.ai)

All public methods are async. Callers must `await` every call. Requests are
never retried here: a failure surfaces immediately as an ArchivistError
subclass and the caller decides what to do with the row.
"""

import os
import json
import asyncio
import logging
from typing import Optional, Dict, Any, Type, TypeVar
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, ValidationError

from clients.archivist_errors import (
    ArchivistError,
    ArchivistConnectionError,
    ArchivistTimeoutError,
    ArchivistResponseError,
    error_for_status,
)
from models.campaigns import Campaign, CampaignList, CreatedRecord, LoreRecord, CampaignLink
from models.links import ResolvedLink

logger = logging.getLogger('ArchivistClient')

DEFAULT_BASE_URL = 'https://api.myarchivist.ai'

ModelT = TypeVar('ModelT', bound=BaseModel)


class ArchivistClient:
    """Async client for the Archivist REST API.

    Usage:
        async with ArchivistClient(api_key) as client:
            campaigns = await client.list_campaigns()
            record = await client.create_item(campaign_id, "Sunblade", "A blade of light.")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv('ARCHIVIST_API_KEY', '')
        self.base_url = (base_url or os.getenv('ARCHIVIST_BASE_URL') or DEFAULT_BASE_URL).rstrip('/')
        # None = whatever the transport defaults to; no local timeout is enforced.
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

        if not self.api_key:
            logger.warning("ARCHIVIST_API_KEY not set — API calls will be rejected.")

    async def __aenter__(self) -> "ArchivistClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal HTTP layer
    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'x-api-key': self.api_key or '',
        }

    async def connect(self) -> None:
        """Create the aiohttp session if needed."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        """Shut down the aiohttp session cleanly."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.debug("Archivist client closed.")

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Execute a single HTTP request (no retry).

        Returns the decoded JSON body, or None for 204 / empty responses.
        """
        await self.connect()
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {'headers': self._headers()}
        if params:
            kwargs['params'] = params
        if body is not None:
            kwargs['json'] = body
        if self.timeout is not None:
            kwargs['timeout'] = aiohttp.ClientTimeout(total=self.timeout)

        logger.debug(f"{method} {path}")
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise error_for_status(resp.status, resp.reason or '', text)
                if resp.status == 204 or not text.strip():
                    return None
                try:
                    return json.loads(text)
                except ValueError as e:
                    raise ArchivistResponseError(f"invalid JSON ({e})", path) from e
        except ArchivistError:
            raise
        except asyncio.TimeoutError as e:
            raise ArchivistTimeoutError(f"Request timed out: {method} {path}") from e
        except aiohttp.ClientError as e:
            raise ArchivistConnectionError(f"Network error: {e}") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        """Validate a response body against *model*."""
        if data is None:
            raise ArchivistResponseError("empty body", path)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ArchivistResponseError(str(e), path) from e

    @staticmethod
    def _parse_optional(model: Type[ModelT], data: Any, path: str) -> Optional[ModelT]:
        if data is None:
            return None
        return ArchivistClient._parse(model, data, path)

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    async def list_campaigns(self) -> CampaignList:
        """First page (up to 100) of the caller's campaigns."""
        path = '/v1/campaigns'
        data = await self._request('GET', path, params={'page': 1, 'size': 100})
        if data is None:
            return CampaignList()
        return self._parse(CampaignList, data, path)

    async def create_campaign(self, title: str) -> Campaign:
        path = '/v1/campaigns'
        data = await self._request('POST', path, body={'title': title})
        campaign = self._parse(Campaign, data, path)
        logger.info(f"Created campaign '{campaign.title}' ({campaign.id})")
        return campaign

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def create_character(
        self,
        campaign_id: str,
        character_name: str,
        description: Optional[str] = None,
        character_type: str = 'NPC',
    ) -> CreatedRecord:
        """Create a character. *character_type* is 'PC' or 'NPC'."""
        if character_type not in ('PC', 'NPC'):
            raise ValueError(f"Unsupported character type: {character_type}")
        path = '/v1/characters'
        body: Dict[str, Any] = {
            'campaign_id': campaign_id,
            'character_name': character_name,
            'type': character_type,
        }
        if description is not None:
            body['description'] = description
        data = await self._request('POST', path, body=body)
        return self._parse(CreatedRecord, data, path)

    async def _create_named(
        self, path: str, campaign_id: str, name: str, description: Optional[str]
    ) -> CreatedRecord:
        body: Dict[str, Any] = {'campaign_id': campaign_id, 'name': name}
        if description is not None:
            body['description'] = description
        data = await self._request('POST', path, body=body)
        return self._parse(CreatedRecord, data, path)

    async def create_item(self, campaign_id: str, name: str,
                          description: Optional[str] = None) -> CreatedRecord:
        return await self._create_named('/v1/items', campaign_id, name, description)

    async def create_location(self, campaign_id: str, name: str,
                              description: Optional[str] = None) -> CreatedRecord:
        return await self._create_named('/v1/locations', campaign_id, name, description)

    async def create_faction(self, campaign_id: str, name: str,
                             description: Optional[str] = None) -> CreatedRecord:
        return await self._create_named('/v1/factions', campaign_id, name, description)

    async def create_lore(
        self,
        world_id: str,
        sub_type: str,
        content: str,
        file_name: str,
        original_name: Optional[str] = None,
        file_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> Optional[LoreRecord]:
        """Upload one lore document (or one chunk of one).

        *world_id* is the campaign id; the lore endpoint calls it a world.
        """
        path = '/v1/lore'
        body: Dict[str, Any] = {
            'world_id': world_id,
            'sub_type': sub_type,
            'content': content,
            'file_name': file_name,
        }
        if original_name is not None:
            body['original_name'] = original_name
        if file_type is not None:
            body['file_type'] = file_type
        if size is not None:
            body['size'] = size
        data = await self._request('POST', path, body=body)
        return self._parse_optional(LoreRecord, data, path)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def create_campaign_link(self, campaign_id: str, link: ResolvedLink) -> Optional[CampaignLink]:
        """Link two records of the campaign. Links are directional."""
        path = f"/v1/campaigns/{quote(campaign_id, safe='')}/links"
        body = {
            'from_id': link.from_id,
            'from_type': link.from_type.value,
            'to_id': link.to_id,
            'to_type': link.to_type.value,
            'alias': link.alias,
            'campaign_id': campaign_id,
        }
        data = await self._request('POST', path, body=body)
        return self._parse_optional(CampaignLink, data, path)
