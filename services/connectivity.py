"""
Connectivity state of the service, driving offline queueing and sync replay.
"""

import logging
import threading

logger = logging.getLogger("labeliq.sync")


class ConnectivityMonitor:
    """Online/offline flag set by the client or the host environment"""

    def __init__(self, start_online: bool = True):
        self._online = start_online
        self._lock = threading.Lock()

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> bool:
        """Update the state, returning True when it went offline -> online"""
        with self._lock:
            reconnected = online and not self._online
            if online != self._online:
                logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
            self._online = online
        return reconnected
