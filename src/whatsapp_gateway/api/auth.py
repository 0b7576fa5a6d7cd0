"""Shared-secret authentication for the HTTP API."""

from __future__ import annotations

import json
import secrets
from typing import TYPE_CHECKING

from fastapi import Header, Request

from whatsapp_gateway.domain.errors import AuthError

if TYPE_CHECKING:
    from whatsapp_gateway.containers import AppContainer


async def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> None:
    """Ensure the request carries the shared secret in a header or JSON body."""
    container: AppContainer = request.app.state.container
    candidate = x_api_key or _bearer_token(authorization)
    if candidate is None:
        candidate = await _body_api_key(request)
    if not candidate or not secrets.compare_digest(
        candidate.encode(), container.settings.api_secret_key.encode()
    ):
        raise AuthError("Unauthorized")


async def require_bridge_token(
    request: Request, x_bridge_token: str | None = Header(default=None)
) -> None:
    """Ensure webhook calls come from the configured bridge."""
    container: AppContainer = request.app.state.container
    if not x_bridge_token or not secrets.compare_digest(
        x_bridge_token.encode(), container.settings.bridge_webhook_token.encode()
    ):
        raise AuthError("Unauthorized")


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def _body_api_key(request: Request) -> str | None:
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = json.loads(await request.body() or b"{}")
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("apiKey"), str):
        return body["apiKey"]
    return None
