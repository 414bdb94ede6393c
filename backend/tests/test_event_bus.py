"""Tests for tenant-scoped agent event fan-out."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pagebuilder.services.event_bus import EventBus


def fake_socket():
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_text = AsyncMock()
    return ws


class TestEventBus:
    @pytest.mark.asyncio
    async def test_broadcast_reaches_own_tenant_only(self):
        bus = EventBus()
        mine, theirs = fake_socket(), fake_socket()
        await bus.connect("acme", mine)
        await bus.connect("globex", theirs)

        await bus.broadcast("acme", {"type": "agent_started"})

        mine.send_text.assert_awaited_once()
        theirs.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_socket_dropped(self):
        bus = EventBus()
        broken = fake_socket()
        broken.send_text.side_effect = RuntimeError("closed")
        await bus.connect("acme", broken)

        await bus.broadcast("acme", {"type": "agent_started"})

        assert "acme" not in bus.connections

    @pytest.mark.asyncio
    async def test_disconnect_unknown_is_harmless(self):
        bus = EventBus()

        await bus.disconnect("acme", fake_socket())

        assert bus.connections == {}
