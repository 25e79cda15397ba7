"""Background token renewal for username/password sessions.

The renewer sleeps on the session's shutdown event with a timeout equal to
the renewal interval. Whichever happens first wins: if the event is set the
thread exits, otherwise a new token is fetched and swapped in. A failed
renewal invalidates the session instead of letting it keep serving a token
that is about to expire.
"""

import logging
import threading
from typing import TYPE_CHECKING

from provision_client.auth.token import RENEW_INTERVAL

if TYPE_CHECKING:
    from provision_client.session import Session

logger = logging.getLogger(__name__)


class TokenRenewer(threading.Thread):
    """Daemon thread that periodically renews a session's token.

    Args:
        session: Session whose token is renewed.
        shutdown: Event set when the session closes.
        interval: Seconds between renewals.
    """

    def __init__(self, session: "Session", shutdown: threading.Event, interval: float = RENEW_INTERVAL) -> None:
        super().__init__(name="provision-token-renewer", daemon=True)
        self._session = session
        self._shutdown = shutdown
        self.interval = interval
        self.renewals = 0

    def run(self) -> None:
        while not self._shutdown.wait(self.interval):
            if not self.renew_once():
                return
        logger.debug("Token renewal stopped")

    def renew_once(self) -> bool:
        """Fetch and install a new token.

        Returns:
            True if the loop should keep running.
        """
        if self._shutdown.is_set():
            return False
        try:
            self._session.renew_token()
        except Exception as e:
            if self._shutdown.is_set():
                # Closed while the renewal was in flight.
                return False
            logger.critical(f"Error renewing token, session can no longer authenticate: {e}")
            self._session.invalidate(e)
            return False
        self.renewals += 1
        logger.debug(f"Renewed session token ({self.renewals} renewals)")
        return True
