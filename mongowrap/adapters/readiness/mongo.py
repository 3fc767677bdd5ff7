"""Readiness probe for a freshly started MongoDB server.

One round trip: connect, list database names, disconnect. The probe does
not retry. The timeout bounds server selection, the connection and the
round trip itself, so a server that accepts the connection but never
answers still fails in time.
"""

import logging

from pymongo import MongoClient
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from mongowrap.domain.config import DEFAULT_START_TIMEOUT_MS

logger = logging.getLogger(__name__)


class MongoReadinessProbe:
    """Checks that a server accepts connections and answers a request."""

    def __init__(self, default_timeout_ms: int = DEFAULT_START_TIMEOUT_MS):
        """Initialize probe.

        Args:
            default_timeout_ms: Timeout used when a caller passes 0
        """
        self.default_timeout_ms = default_timeout_ms

    def effective_timeout(self, timeout_ms: int) -> int:
        return timeout_ms if timeout_ms > 0 else self.default_timeout_ms

    def await_ready(self, address: str, timeout_ms: int = 0) -> bool:
        """Wait until the server at address answers, or the timeout expires.

        Args:
            address: host:port of the server
            timeout_ms: Upper bound for the whole probe (0 = default)

        Returns:
            True if the server listed its databases, False on any error
        """
        timeout_ms = self.effective_timeout(timeout_ms)
        logger.info(f"Probing {address} (timeout {timeout_ms}ms)")

        client: MongoClient | None = None
        try:
            client = MongoClient(
                address,
                directConnection=True,
                connectTimeoutMS=timeout_ms,
                serverSelectionTimeoutMS=timeout_ms,
                timeoutMS=timeout_ms,
            )
            client.list_database_names()
            logger.info(f"Server ready at {address}")
            return True
        except ServerSelectionTimeoutError as e:
            logger.info(f"Server at {address} not reachable within {timeout_ms}ms: {e}")
            return False
        except (PyMongoError, OSError, ValueError) as e:
            # ValueError: pymongo rejects the address itself, e.g. port 0
            logger.info(f"Server at {address} refused the probe: {e}")
            return False
        finally:
            if client is not None:
                client.close()
