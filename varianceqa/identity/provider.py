# varianceqa/identity/provider.py

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from varianceqa.core.config import IdentityConfig
from varianceqa.identity.toolkit import IdentityToolkitClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    uid: Optional[str]


class IdentityProvider(ABC):
    """Capability interface for the optional identity provider."""
    kind: str

    @abstractmethod
    def auth_state(self) -> "asyncio.Future[Optional[AuthUser]]":
        """Register the auth-state listener and return a future for its first event."""
        ...

    @abstractmethod
    async def sign_in(self) -> None:
        """Start sign-in; the outcome is delivered through auth_state()."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the auth-state listener."""
        ...


class AbsentIdentityProvider(IdentityProvider):
    kind = "absent"

    def __init__(self) -> None:
        self._listener: Optional[asyncio.Future] = None

    def auth_state(self) -> "asyncio.Future[Optional[AuthUser]]":
        if self._listener is not None:
            raise RuntimeError("auth-state listener already registered")
        self._listener = asyncio.get_running_loop().create_future()
        self._listener.set_result(None)
        return self._listener

    async def sign_in(self) -> None:
        return None

    def close(self) -> None:
        self._listener = None


class _ToolkitIdentityProvider(IdentityProvider):
    def __init__(self, client: IdentityToolkitClient) -> None:
        self.client = client
        self._listener: Optional[asyncio.Future] = None

    @property
    def listening(self) -> bool:
        return self._listener is not None

    def auth_state(self) -> "asyncio.Future[Optional[AuthUser]]":
        if self._listener is not None:
            raise RuntimeError("auth-state listener already registered")
        self._listener = asyncio.get_running_loop().create_future()
        return self._listener

    def _emit(self, user: Optional[AuthUser]) -> None:
        # Only the first event is delivered.
        if self._listener is not None and not self._listener.done():
            self._listener.set_result(user)

    async def sign_in(self) -> None:
        result = await self._request_sign_in()
        uid = await self.client.resolve_uid(result)
        logger.info("Identity provider sign-in completed (kind=%s uid_present=%s)", self.kind, bool(uid))
        self._emit(AuthUser(uid=uid) if uid else None)

    @abstractmethod
    async def _request_sign_in(self) -> dict:
        ...

    def close(self) -> None:
        # A pending bootstrap sees "no user" and falls back to a local id.
        self._emit(None)
        self._listener = None


class AnonymousIdentityProvider(_ToolkitIdentityProvider):
    kind = "anonymous"

    async def _request_sign_in(self) -> dict:
        return await self.client.sign_up_anonymous()


class TokenIdentityProvider(_ToolkitIdentityProvider):
    kind = "token"

    def __init__(self, client: IdentityToolkitClient, token: str) -> None:
        super().__init__(client)
        self.token = token

    async def _request_sign_in(self) -> dict:
        return await self.client.sign_in_with_custom_token(self.token)


def identity_provider_factory(
    cfg: IdentityConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> IdentityProvider:
    """Factory function to get the identity provider variant for the configuration."""
    if not cfg.enabled:
        return AbsentIdentityProvider()

    api_key = str(cfg.provider_config.get("apiKey")).strip()
    client = IdentityToolkitClient(api_key, transport=transport)
    if cfg.initial_auth_token:
        return TokenIdentityProvider(client, cfg.initial_auth_token)
    return AnonymousIdentityProvider(client)
