"""
Retrieval and decoding of the remote engine build and module manifests.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from enginemanager.cancellation import CancellationToken
from enginemanager.enginemanager_config import EngineManagerConfig
from enginemanager.enginemanager_exceptions import (
    ManifestDecodeError,
    ManifestFetchError,
    ManifestSchemaError,
)
from enginemanager.enginemanager_logger import EngineManagerLogger
from enginemanager.manifest_models import EngineManifest, ModuleManifest

ManifestT = TypeVar("ManifestT", bound=BaseModel)


class ManifestClient:
    """
    Fetches manifests from the URLs in the configuration. Nothing is cached;
    every call issues a fresh request.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: EngineManagerConfig,
        logger: EngineManagerLogger,
    ):
        self.session = session
        self.config = config
        self.logger = logger

    async def fetch_engine_manifest(self, cancel: Optional[CancellationToken] = None) -> EngineManifest:
        url = self.config.engine_builds_manifest_url
        data = await self._fetch_json(url, cancel)
        return self._decode(EngineManifest, data, url)

    async def fetch_module_manifest(self, cancel: Optional[CancellationToken] = None) -> ModuleManifest:
        url = self.config.modules_manifest_url
        data = await self._fetch_json(url, cancel)
        return self._decode(ModuleManifest, data, url)

    async def _fetch_json(self, url: str, cancel: Optional[CancellationToken]) -> Any:
        CancellationToken.check(cancel)
        self.logger.log(f"Loading manifest from {url}...", logging.DEBUG)

        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                body = await response.read()
        except aiohttp.ClientError as e:
            raise ManifestFetchError(f"Failed to fetch manifest from {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise ManifestFetchError(f"Timed out fetching manifest from {url}") from e

        CancellationToken.check(cancel)

        try:
            return json.loads(body)
        except ValueError as e:
            raise ManifestDecodeError(f"Manifest at {url} is not valid JSON: {e}") from e

    def _decode(self, model: Type[ManifestT], data: Any, url: str) -> ManifestT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            self.logger.log(f"Manifest at {url} does not match the expected schema: {e}", logging.ERROR)
            raise ManifestSchemaError(f"Manifest at {url} does not match the expected schema: {e}") from e
