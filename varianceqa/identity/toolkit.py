"""Identity Toolkit REST client used by the anonymous and custom-token providers."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from varianceqa.core.errors import IdentityProviderError

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_BASE_URL = "https://identitytoolkit.googleapis.com/v1"


class IdentityToolkitClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = IDENTITY_TOOLKIT_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def _post(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/accounts:{method}"
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(url, params={"key": self.api_key}, json=body)
        except httpx.RequestError as exc:
            raise IdentityProviderError(f"accounts:{method} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise IdentityProviderError(f"accounts:{method} returned HTTP {response.status_code}: {message or 'Unknown error'}")
        if not isinstance(data, dict):
            raise IdentityProviderError(f"accounts:{method} returned a non-object body")
        return data

    async def sign_up_anonymous(self) -> Dict[str, Any]:
        return await self._post("signUp", {"returnSecureToken": True})

    async def sign_in_with_custom_token(self, token: str) -> Dict[str, Any]:
        return await self._post("signInWithCustomToken", {"token": token, "returnSecureToken": True})

    async def lookup(self, id_token: str) -> Dict[str, Any]:
        return await self._post("lookup", {"idToken": id_token})

    async def resolve_uid(self, sign_in_result: Dict[str, Any]) -> Optional[str]:
        # signInWithCustomToken answers without localId; ask for it.
        uid = str(sign_in_result.get("localId") or "").strip()
        if uid:
            return uid
        id_token = str(sign_in_result.get("idToken") or "").strip()
        if not id_token:
            return None
        users = (await self.lookup(id_token)).get("users") or []
        if users and isinstance(users[0], dict):
            return str(users[0].get("localId") or "").strip() or None
        logger.warning("Identity lookup returned no users for a fresh sign-in")
        return None
