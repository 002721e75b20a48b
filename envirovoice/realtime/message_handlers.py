"""
Handlers for each inbound realtime message type.

Every handler receives the ConnectionManager, the sender's connection
metadata and the parsed message. Handlers run inside the manager's lock, so
the registry and presence store never change underneath them; the sends they
await are strictly ordered as written.

Precondition failures are logged and the message is dropped without a reply.
"""

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ..error_types import ErrorMessages, create_websocket_error_response
from ..exceptions import DuplicateIdentityError, RouteNotFoundError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import ConnectionMetadata
from .message_builders import build_join, build_participants_list, build_ptt_update

if TYPE_CHECKING:
    from .connection_manager import ConnectionManager

logger = get_logger(__name__)

SIGNALING_TYPES = ("offer", "answer", "ice-candidate")


async def handle_join_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """
    Bind a gamertag to the sender and announce it.

    A taken gamertag is terminal for the sender: it receives an error frame and
    its connection is closed.
    """
    connection_id = metadata.connection_id
    raw_gamertag = message.get("gamertag")
    if not isinstance(raw_gamertag, str) or not raw_gamertag.strip():
        logger.warning("Join without gamertag dropped", connection_id=connection_id)
        return

    gamertag = raw_gamertag.strip()
    if len(gamertag) > manager.max_gamertag_length:
        logger.warning(
            "Join with oversized gamertag dropped",
            connection_id=connection_id,
            length=len(gamertag),
            max_length=manager.max_gamertag_length,
        )
        return

    if metadata.is_identified:
        logger.warning(
            "Join from already identified connection dropped",
            connection_id=connection_id,
            gamertag=metadata.gamertag,
            requested=gamertag,
        )
        return

    try:
        manager.registry.register(connection_id, gamertag)
    except DuplicateIdentityError as e:
        error_frame = create_websocket_error_response(e.error_type, ErrorMessages.GAMERTAG_IN_USE)
        await manager.broadcaster.send_to(connection_id, error_frame)
        await manager.close_connection(connection_id, reason="Gamertag already in use")
        return

    metadata.gamertag = gamertag
    manager.presence.set_ptt(gamertag, is_talking=True, is_muted=False)
    logger.info("Participant joined", gamertag=gamertag, connection_id=connection_id, participants=len(manager.registry))

    await manager.broadcaster.broadcast_except(connection_id, build_join(gamertag))

    participants = build_participants_list(manager.registry.list_gamertags())
    await manager.broadcaster.send_to(connection_id, participants)
    await manager.broadcaster.broadcast_except(connection_id, participants)


async def handle_leave_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """Explicit leave; the connection stays open but becomes anonymous again."""
    gamertag = manager.registry.get_gamertag(metadata.connection_id)
    if gamertag is None:
        logger.debug("Leave from anonymous connection ignored", connection_id=metadata.connection_id)
        return

    await manager.remove_participant(metadata, gamertag)
    logger.info("Participant left", gamertag=gamertag, participants=len(manager.registry))


async def handle_ptt_status_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """Upsert a PTT state and echo it to every connection, sender included."""
    gamertag = message.get("gamertag")
    missing = [key for key in ("gamertag", "isTalking", "isMuted") if message.get(key) is None]
    if missing or not isinstance(gamertag, str):
        logger.warning("ptt-status missing fields dropped", connection_id=metadata.connection_id, missing=missing)
        return

    try:
        state = manager.presence.set_ptt(gamertag, is_talking=message["isTalking"], is_muted=message["isMuted"])
    except ValidationError as e:
        logger.warning(
            "ptt-status with invalid values dropped",
            connection_id=metadata.connection_id,
            gamertag=gamertag,
            errors=e.error_count(),
        )
        return

    logger.debug("PTT state updated", gamertag=gamertag, is_talking=state.is_talking, is_muted=state.is_muted)
    await manager.broadcaster.broadcast_all(build_ptt_update(state))


async def handle_signaling_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """
    Forward an offer, answer or ICE candidate verbatim to the peer named in ``to``.

    Raises:
        RouteNotFoundError: when ``to`` has no ready connection.
    """
    message_type = message.get("type")
    target, source = message.get("to"), message.get("from")
    if not target or not source:
        logger.warning("Signaling message without 'to' or 'from' dropped", message_type=message_type)
        return

    target_id = manager.registry.find_connection(target) if isinstance(target, str) else None
    if target_id is None or not await manager.broadcaster.send_to(target_id, message):
        raise RouteNotFoundError(
            "Signaling target not connected",
            context=create_error_context(
                connection_id=metadata.connection_id, gamertag=metadata.gamertag, message_type=message_type
            ),
            target=str(target),
        )

    if message_type == "ice-candidate":
        logger.debug("ICE candidate relayed", source=source, target=target)
    else:
        logger.info("Signaling message relayed", message_type=message_type, source=source, target=target)


async def handle_heartbeat_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """Keep-alive; receiving it already refreshed ``last_seen``."""


async def handle_request_participants_message(
    manager: "ConnectionManager", metadata: ConnectionMetadata, message: dict[str, Any]
) -> None:
    """Send the roster to the requester, then resynchronize everyone."""
    participants = build_participants_list(manager.registry.list_gamertags())
    await manager.broadcaster.send_to(metadata.connection_id, participants)
    await manager.broadcaster.broadcast_all(participants)
    logger.info("Participants list sent", requested_by=metadata.gamertag, participants=len(participants["list"]))
