# Area: Daemon
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches.daemon — Match Daemon
=======================================

The daemon side of the gamepack protocol. Owns the store, one write
pipeline per configured gamepack and the recovery orchestrator.

Usage:
    from companion_matches import MatchDaemon, load_config

    daemon = MatchDaemon(load_config("config.json"))
    daemon.register_channel("league", league_channel)
    asyncio.run(daemon.run_recovery())          # after a restart

    reply = daemon.handle_pack_message("league", {
        "type": "write_stats",
        "subpack": 0,
        "external_match_id": "EUW1_123",
        "stats": {"kills": 3},
    })
    # {"protocol": "gamepack.v1", "status": "ok", "reply_to": "write_stats", ...}
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from ._config import DEFAULT_CONFIG, validate_config, merge_defaults
from .errors import CompanionMatchesError, UnknownSubpack
from .types import (
    GetMatchTimelineRequest,
    GetMatchTimelineResponse,
    SetComplete,
    WriteEvents,
    WriteStats,
    parse_pack_request,
)
from ._pipeline import ApplyOutcome, EventListener, MatchLockRegistry, MatchWritePipeline, SchemaRegistry
from ._recovery import ChannelRegistry, GamepackChannel, RecoveryOrchestrator, RecoveryReport
from ._shared.protocol import build_error_response, build_ok_response
from ._shared.protocol_logger import ProtocolLogger
from ._store import MatchRecord, MatchRepository, TimelineRepository, init_database

logger = logging.getLogger("companion_matches.daemon")


class MatchDaemon:
    """
    Companion daemon: stores gamepack match data and recovers stale matches.

    Args:
        config: Daemon config (see ``load_config``); missing keys take defaults
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config: Dict[str, Any] = copy.deepcopy(config or {})
        merge_defaults(self.config, DEFAULT_CONFIG)
        validate_config(self.config)

        db_path = self.config["db_path"]
        init_database(db_path)
        self.matches = MatchRepository(db_path)
        self.timeline = TimelineRepository(db_path)
        self.locks = MatchLockRegistry()
        self.protocol_logger = ProtocolLogger(enabled=bool(self.config.get("protocol_log")))

        self.pipelines: Dict[str, MatchWritePipeline] = {}
        for pack_id, pack_config in self.config["packs"].items():
            self.pipelines[pack_id] = MatchWritePipeline(
                pack_id,
                self.matches,
                self.timeline,
                SchemaRegistry.from_config(pack_id, pack_config),
                locks=self.locks,
                capture_config=self.config["capture"],
            )

        recovery = self.config["recovery"]
        self.channels = ChannelRegistry()
        self.recovery = RecoveryOrchestrator(
            self.matches,
            self.pipelines,
            self.channels,
            timeout_secs=recovery["timeout_secs"],
            concurrency=recovery["concurrency"],
            stuck_after_attempts=recovery["stuck_after_attempts"],
            protocol_logger=self.protocol_logger,
        )
        logger.info(f"Daemon ready: db={db_path}, packs={sorted(self.pipelines)}")

    # ══════════════════════════════════════════════════════════════
    # GAMEPACK -> DAEMON
    # ══════════════════════════════════════════════════════════════

    def handle_pack_message(self, pack_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle one message from a gamepack and build the reply envelope.

        Args:
            pack_id: Gamepack the message came from
            message: Wire dict (``type`` selects the message variant)

        Returns:
            Ok envelope (with the apply outcome or timeline data), or an
            error envelope carrying the error's code and message
        """
        is_dict = isinstance(message, dict)
        message_type = str(message.get("type", "")) if is_dict else ""
        correlation_id = message.get("request_id") if is_dict else None
        external_match_id = message.get("external_match_id") if is_dict else None

        try:
            request = parse_pack_request(message)
            if isinstance(request, GetMatchTimelineRequest):
                body = self.get_timeline(pack_id, request).to_wire()
            else:
                outcome = self._pipeline_for(pack_id, request).apply_message(request)
                body = {"outcome": outcome.to_dict()}
        except CompanionMatchesError as e:
            logger.warning(
                f"Rejected {message_type or 'message'} from {pack_id}: {e}",
                extra={
                    "pack_id": pack_id,
                    "external_match_id": external_match_id,
                    "error_code": e.code,
                },
            )
            self.protocol_logger.log_received(pack_id, message_type, external_match_id, e.code)
            return build_error_response(message_type, e.to_dict(), correlation_id)

        self.protocol_logger.log_received(pack_id, message_type, external_match_id)
        return build_ok_response(message_type, body, correlation_id)

    def _pipeline_for(self, pack_id: str, message) -> MatchWritePipeline:
        pipeline = self.pipelines.get(pack_id)
        if pipeline is None:
            raise UnknownSubpack(message.subpack, message.external_match_id, pack_id)
        return pipeline

    def apply(self, pack_id: str, message) -> ApplyOutcome:
        """Apply a typed WriteStats / WriteEvents / SetComplete message.

        Raises:
            WriteError: If the message is rejected
        """
        if not isinstance(message, (WriteStats, WriteEvents, SetComplete)):
            raise TypeError(f"Not a match data message: {type(message).__name__}")
        return self._pipeline_for(pack_id, message).apply_message(message)

    def get_timeline(
        self, pack_id: str, request: GetMatchTimelineRequest
    ) -> GetMatchTimelineResponse:
        """Serve a timeline request. Never mutates anything."""
        return self.timeline.get_timeline(pack_id, request)

    def get_match(
        self, pack_id: str, subpack: int, external_match_id: str
    ) -> Optional[MatchRecord]:
        return self.matches.get_match(pack_id, subpack, external_match_id)

    def add_event_listener(self, listener: EventListener, pack_id: Optional[str] = None) -> None:
        """Register an event listener on one pack, or on every configured pack."""
        targets = [self.pipelines[pack_id]] if pack_id else list(self.pipelines.values())
        for pipeline in targets:
            pipeline.add_event_listener(listener)

    # ══════════════════════════════════════════════════════════════
    # CHANNELS & RECOVERY
    # ══════════════════════════════════════════════════════════════

    def register_channel(self, pack_id: str, channel: GamepackChannel) -> None:
        self.channels.register(pack_id, channel)

    def unregister_channel(self, pack_id: str) -> None:
        self.channels.unregister(pack_id)

    def in_progress_matches(self, pack_id: Optional[str] = None) -> List[MatchRecord]:
        return self.matches.list_in_progress(pack_id)

    async def run_recovery(self, pack_id: Optional[str] = None) -> RecoveryReport:
        """Run one recovery pass (e.g. on startup or when a pack reconnects)."""
        return await self.recovery.run_pass(pack_id)

    async def run_recovery_forever(self) -> None:
        """Run recovery passes at ``recovery.interval_secs`` until stop()."""
        await self.recovery.run_forever(self.config["recovery"]["interval_secs"])

    def stop(self) -> None:
        self.recovery.stop()
