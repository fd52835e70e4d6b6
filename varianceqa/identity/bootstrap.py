from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from varianceqa.core.state import SessionIdentity
from varianceqa.identity.provider import AuthUser, IdentityProvider

logger = logging.getLogger(__name__)

AUTH_INIT_WARNING = "Failed to initialize auth. You can still try processing."


@dataclass(frozen=True)
class BootstrapResult:
    identity: SessionIdentity
    warning: str = ""


def new_local_identity() -> SessionIdentity:
    return SessionIdentity(user_id=uuid.uuid4().hex, source="local")


async def _sign_in_and_wait(
    provider: IdentityProvider,
    listener: "asyncio.Future[Optional[AuthUser]]",
) -> Optional[AuthUser]:
    await provider.sign_in()
    return await listener


async def bootstrap_identity(provider: IdentityProvider, *, timeout_s: float = 10.0) -> BootstrapResult:
    """Acquire the session identity. Never raises; provider failures become a warning."""
    try:
        listener = provider.auth_state()
        user = await asyncio.wait_for(_sign_in_and_wait(provider, listener), timeout=timeout_s)
    except Exception as exc:
        logger.warning("Identity provider init failed (kind=%s): %r", provider.kind, exc)
        return BootstrapResult(identity=new_local_identity(), warning=AUTH_INIT_WARNING)

    if user is not None and user.uid:
        return BootstrapResult(identity=SessionIdentity(user_id=user.uid, source="provider"))
    return BootstrapResult(identity=new_local_identity())
