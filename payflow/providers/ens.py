"""Async ENS lookups through the ensdata.net HTTP API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..services.address import is_valid_evm_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnsProfile:
    name: str
    address: Optional[str] = None
    avatar: Optional[str] = None
    description: Optional[str] = None
    twitter: Optional[str] = None
    website: Optional[str] = None
    github: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "address": self.address,
            "avatar": self.avatar,
            "description": self.description,
            "twitter": self.twitter,
            "website": self.website,
            "github": self.github,
        }


class EnsProvider:
    """Single-shot ENS reads. Every lookup fails soft to ``None``."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.ens_api_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    async def _lookup(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(f"/{key}")
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"ENS lookup failed for {key}: {exc}")
            return None
        return data if isinstance(data, dict) else None

    async def resolve(self, name: str) -> Optional[str]:
        data = await self._lookup(name.strip().lower())
        if not data:
            return None
        address = data.get("address")
        return address if is_valid_evm_address(address) else None

    async def reverse_resolve(self, address: str) -> Optional[str]:
        data = await self._lookup(address.strip())
        if not data:
            return None
        name = data.get("ens") or data.get("ens_primary") or data.get("name")
        return name or None

    async def get_profile(self, name: str) -> Optional[EnsProfile]:
        data = await self._lookup(name.strip().lower())
        if not data:
            return None
        address = data.get("address")
        return EnsProfile(
            name=data.get("ens") or name,
            address=address if is_valid_evm_address(address) else None,
            avatar=data.get("avatar_url") or data.get("avatar"),
            description=data.get("description"),
            twitter=data.get("twitter"),
            website=data.get("url"),
            github=data.get("github"),
        )
