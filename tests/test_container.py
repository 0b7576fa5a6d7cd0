"""Tests for container wiring and configuration helpers."""

import asyncio

from whatsapp_gateway.config import normalize_phone_number
from whatsapp_gateway.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.session_manager is not None
    assert container.connect_handler.poll_timeout_seconds == 0.3
    assert container.event_sink is container.session_manager.provider
    asyncio.run(container.close_resources())


def test_normalize_phone_number() -> None:
    assert normalize_phone_number("+55 (11) 99999-9999") == "5511999999999"
    assert normalize_phone_number("abc") is None
    assert normalize_phone_number(None) is None
