"""Single-shot lookup of the selected site's details."""

from __future__ import annotations

import asyncio
import logging

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.models import SiteDto
from comwatt_monitor.domain.errors import ApiDomainError, DomainError, GenericDomainError
from comwatt_monitor.polling.base import SiteSource
from comwatt_monitor.result import Failure, Result, Success

logger = logging.getLogger(__name__)


class FetchCurrentSiteUseCase:
    """The selected site, or None when no site is selected or it is gone."""

    def __init__(self, api: ComwattApi, settings: SiteSource) -> None:
        self._api = api
        self._settings = settings

    async def single_fetch(self) -> Result[SiteDto | None, DomainError]:
        try:
            site_id = await self._settings.get_site_id()
            if site_id is None:
                return Success(None)
            sites = await self._api.sites()
            if isinstance(sites, Failure):
                return Failure(ApiDomainError(sites.error))
            return Success(next((s for s in sites.value if s.id == site_id), None))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Current site lookup failed")
            return Failure(GenericDomainError(str(e) or type(e).__name__))
