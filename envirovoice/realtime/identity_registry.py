"""
Identity registry: the binding between live connections and gamertags.

The registry keeps two maps that are always updated together, one per
direction, so signaling can be routed by gamertag in O(1). Iteration order of
``list_gamertags`` is join order.

The registry does no locking of its own. Callers mutate it only from inside
ConnectionManager's lock.
"""

from ..exceptions import DuplicateIdentityError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class IdentityRegistry:
    """Maps connection ids to gamertags and back, enforcing uniqueness."""

    def __init__(self) -> None:
        self._by_connection: dict[int, str] = {}
        self._by_gamertag: dict[str, int] = {}

    def register(self, connection_id: int, gamertag: str) -> None:
        """
        Bind ``gamertag`` to ``connection_id``.

        Raises:
            DuplicateIdentityError: if another connection holds the gamertag,
                or this connection already holds an identity.
        """
        context = create_error_context(connection_id=connection_id, gamertag=gamertag, message_type="join")

        holder = self._by_gamertag.get(gamertag)
        if holder is not None:
            raise DuplicateIdentityError(
                "Gamertag already registered",
                context=context,
                gamertag=gamertag,
                details={"holder_connection_id": holder},
            )

        current = self._by_connection.get(connection_id)
        if current is not None:
            raise DuplicateIdentityError(
                "Connection already registered",
                context=context,
                gamertag=gamertag,
                details={"current_gamertag": current},
            )

        self._by_connection[connection_id] = gamertag
        self._by_gamertag[gamertag] = connection_id
        logger.debug("Identity registered", connection_id=connection_id, gamertag=gamertag)

    def unregister(self, connection_id: int) -> str | None:
        """Remove the identity bound to ``connection_id`` and return it, if any."""
        gamertag = self._by_connection.pop(connection_id, None)
        if gamertag is None:
            return None
        self._by_gamertag.pop(gamertag, None)
        logger.debug("Identity unregistered", connection_id=connection_id, gamertag=gamertag)
        return gamertag

    def find_connection(self, gamertag: str) -> int | None:
        return self._by_gamertag.get(gamertag)

    def get_gamertag(self, connection_id: int) -> str | None:
        return self._by_connection.get(connection_id)

    def is_taken(self, gamertag: str) -> bool:
        return gamertag in self._by_gamertag

    def list_gamertags(self) -> list[str]:
        """Snapshot of every registered gamertag in join order."""
        return list(self._by_gamertag)

    def __len__(self) -> int:
        return len(self._by_connection)

    def __contains__(self, gamertag: object) -> bool:
        return gamertag in self._by_gamertag
