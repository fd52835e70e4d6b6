from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from varianceqa.analysis.controller import FormController
from varianceqa.core.config import AppConfig, IdentityConfig
from varianceqa.identity import bootstrap as bootstrap_module
from varianceqa.identity.provider import (
    AbsentIdentityProvider,
    AnonymousIdentityProvider,
    IdentityProvider,
    TokenIdentityProvider,
    identity_provider_factory,
)

FIREBASE_CONFIG = {"apiKey": "fb-key", "authDomain": "demo.firebaseapp.com", "projectId": "demo"}


def _toolkit_transport(routes, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit(":", 1)[-1]
        if seen is not None:
            seen.append((method, request.url.params.get("key"), json.loads(request.content)))
        return routes[method]

    return httpx.MockTransport(handler)


def _identity_config(token=None, timeout_s=5.0):
    return IdentityConfig(provider_config=FIREBASE_CONFIG, initial_auth_token=token, bootstrap_timeout_s=timeout_s)


def test_factory_picks_variant_from_configuration():
    assert isinstance(identity_provider_factory(IdentityConfig()), AbsentIdentityProvider)
    assert isinstance(identity_provider_factory(IdentityConfig(provider_config={"projectId": "x"})), AbsentIdentityProvider)
    assert isinstance(identity_provider_factory(_identity_config()), AnonymousIdentityProvider)
    token_provider = identity_provider_factory(_identity_config(token="custom-token"))
    assert isinstance(token_provider, TokenIdentityProvider)
    assert token_provider.token == "custom-token"


def test_absent_provider_generates_local_identity():
    result = asyncio.run(bootstrap_module.bootstrap_identity(AbsentIdentityProvider()))
    assert result.identity.source == "local"
    assert len(result.identity.user_id) == 32
    assert result.warning == ""


def test_anonymous_provider_adopts_provider_uid():
    seen = []
    transport = _toolkit_transport({"signUp": httpx.Response(200, json={"localId": "uid-123", "idToken": "t"})}, seen)
    provider = identity_provider_factory(_identity_config(), transport=transport)

    result = asyncio.run(bootstrap_module.bootstrap_identity(provider))

    assert result.identity.user_id == "uid-123"
    assert result.identity.source == "provider"
    assert seen == [("signUp", "fb-key", {"returnSecureToken": True})]


def test_token_provider_signs_in_with_custom_token_and_looks_up_uid():
    seen = []
    transport = _toolkit_transport(
        {
            "signInWithCustomToken": httpx.Response(200, json={"idToken": "id-token", "refreshToken": "r"}),
            "lookup": httpx.Response(200, json={"users": [{"localId": "uid-9"}]}),
        },
        seen,
    )
    provider = identity_provider_factory(_identity_config(token="custom-token"), transport=transport)

    result = asyncio.run(bootstrap_module.bootstrap_identity(provider))

    assert result.identity.user_id == "uid-9"
    assert [call[0] for call in seen] == ["signInWithCustomToken", "lookup"]
    assert seen[0][2] == {"token": "custom-token", "returnSecureToken": True}
    assert seen[1][2] == {"idToken": "id-token"}


def test_sign_in_without_user_falls_back_to_local_identity_without_warning():
    transport = _toolkit_transport({"signUp": httpx.Response(200, json={})})
    provider = identity_provider_factory(_identity_config(), transport=transport)

    result = asyncio.run(bootstrap_module.bootstrap_identity(provider))

    assert result.identity.source == "local"
    assert result.warning == ""


def test_provider_failure_is_downgraded_to_warning(caplog):
    transport = _toolkit_transport({"signUp": httpx.Response(400, json={"error": {"message": "ADMIN_ONLY_OPERATION"}})})
    provider = identity_provider_factory(_identity_config(), transport=transport)

    with caplog.at_level(logging.WARNING):
        result = asyncio.run(bootstrap_module.bootstrap_identity(provider))

    assert result.identity.source == "local"
    assert result.warning == bootstrap_module.AUTH_INIT_WARNING
    assert "Identity provider init failed" in caplog.text
    assert "ADMIN_ONLY_OPERATION" in caplog.text


class HangingProvider(IdentityProvider):
    kind = "hanging"

    def __init__(self):
        self.listener = None
        self.closed = False

    def auth_state(self):
        self.listener = asyncio.get_running_loop().create_future()
        return self.listener

    async def sign_in(self):
        await asyncio.sleep(10)

    def close(self):
        self.closed = True


def test_bootstrap_times_out_instead_of_blocking():
    result = asyncio.run(bootstrap_module.bootstrap_identity(HangingProvider(), timeout_s=0.01))
    assert result.identity.source == "local"
    assert result.warning == bootstrap_module.AUTH_INIT_WARNING


def test_listener_is_registered_once_and_released_on_close():
    transport = _toolkit_transport({"signUp": httpx.Response(200, json={"localId": "uid-1"})})
    provider = identity_provider_factory(_identity_config(), transport=transport)

    async def scenario():
        provider.auth_state()
        with pytest.raises(RuntimeError):
            provider.auth_state()

    asyncio.run(scenario())
    assert provider.listening is True
    provider.close()
    assert provider.listening is False


def test_controller_bootstrap_sets_ready_once_and_closes_provider():
    provider = HangingProvider()
    cfg = AppConfig(identity=IdentityConfig(bootstrap_timeout_s=0.01))
    ctl = FormController("s-1", cfg, identity_provider=provider)
    assert ctl.state.identity_ready is False

    asyncio.run(ctl.bootstrap())
    first_identity = ctl.state.identity
    assert ctl.state.identity_ready is True
    assert ctl.state.warning == bootstrap_module.AUTH_INIT_WARNING

    asyncio.run(ctl.bootstrap())
    assert ctl.state.identity == first_identity

    ctl.close()
    ctl.close()
    assert provider.closed is True


def test_closing_session_during_sign_in_still_ends_with_identity():
    async def slow_sign_up(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.2)
        return httpx.Response(200, json={"localId": "uid-late"})

    cfg = AppConfig(identity=_identity_config(timeout_s=5.0))
    ctl = FormController("s-closing", cfg, transport=httpx.MockTransport(slow_sign_up))

    async def scenario():
        task = asyncio.create_task(ctl.bootstrap())
        await asyncio.sleep(0.05)
        ctl.close()
        await task

    asyncio.run(scenario())

    assert ctl.state.identity_ready is True
    assert ctl.state.identity is not None
    assert ctl.state.identity.source == "local"
    assert ctl.identity_provider.listening is False
