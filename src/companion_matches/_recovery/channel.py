# Area: Recovery
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._recovery.channel — Gamepack channels
=======================================================

The daemon's handle to a connected gamepack process. The transport is
an external collaborator; it only needs to satisfy GamepackChannel.
"""

import logging
from typing import Dict, Optional, Protocol, runtime_checkable

from ..types import IsMatchInProgressRequest, IsMatchInProgressResponse

logger = logging.getLogger("companion_matches.recovery.channel")


@runtime_checkable
class GamepackChannel(Protocol):
    """Protocol for daemon -> gamepack request channels."""

    def is_running(self) -> bool:
        """Whether the gamepack process is up and connected."""
        ...

    async def is_match_in_progress(
        self, request: IsMatchInProgressRequest
    ) -> IsMatchInProgressResponse:
        """Ask the gamepack whether a match is still being played."""
        ...


class ChannelRegistry:
    """
    Registry of connected gamepacks keyed by pack_id.

    Usage:
        channels = ChannelRegistry()
        channels.register("league", league_channel)
        channel = channels.reachable("league")
    """

    def __init__(self):
        self._channels: Dict[str, GamepackChannel] = {}

    def register(self, pack_id: str, channel: GamepackChannel) -> None:
        """Register (or replace) the channel of a gamepack."""
        self._channels[pack_id] = channel
        logger.debug(f"Registered channel for {pack_id}")

    def unregister(self, pack_id: str) -> None:
        """Forget a gamepack's channel. No-op if not registered."""
        if self._channels.pop(pack_id, None) is not None:
            logger.debug(f"Unregistered channel for {pack_id}")

    def get(self, pack_id: str) -> Optional[GamepackChannel]:
        return self._channels.get(pack_id)

    def reachable(self, pack_id: str) -> Optional[GamepackChannel]:
        """The pack's channel if registered and running, else None."""
        channel = self._channels.get(pack_id)
        if channel is None or not channel.is_running():
            return None
        return channel
