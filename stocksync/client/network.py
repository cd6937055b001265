from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from stocksync.client.api_client import ApiRequestError, ApiUnavailableError

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """Tracks reachability of the sync server via a bounded health probe."""

    def __init__(self, api, *, probe_timeout: float = 3.0) -> None:
        self.api = api
        self.probe_timeout = probe_timeout
        self._online: Optional[bool] = None
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @property
    def online(self) -> bool:
        return bool(self._online)

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def probe(self) -> bool:
        try:
            self.api.health(timeout=self.probe_timeout)
            reachable = True
        except (ApiRequestError, ApiUnavailableError):
            reachable = False
        self._set_online(reachable)
        return reachable

    def _set_online(self, value: bool) -> None:
        with self._lock:
            changed = self._online is not value
            self._online = value
            listeners = list(self._listeners)
        if not changed:
            return
        logger.info("Sync server is %s", "reachable" if value else "unreachable")
        for listener in listeners:
            listener(value)


class SyncRunner:
    """Runs sync cycles on an interval while online and on reconnect."""

    def __init__(
        self,
        orchestrator,
        monitor: ConnectivityMonitor,
        *,
        interval_seconds: float = 60.0,
        offline_probe_seconds: float = 5.0,
    ) -> None:
        self.orchestrator = orchestrator
        self.monitor = monitor
        self.interval_seconds = max(1.0, float(interval_seconds))
        self.offline_probe_seconds = max(0.5, float(offline_probe_seconds))
        self._wake = threading.Event()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        monitor.add_listener(self._on_connectivity)

    def _on_connectivity(self, online: bool) -> None:
        if online:
            self._wake.set()

    def run_cycle(self):
        if not self.monitor.probe():
            return None
        return self.orchestrator.sync_once()

    def _safe_cycle(self) -> None:
        try:
            self.run_cycle()
        except Exception:
            logger.exception("Sync cycle failed")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self._safe_cycle()
            self._wake.clear()
            if self._stop_event.is_set():
                break
            # Offline: probe more often so reconnects are noticed quickly.
            timeout = self.interval_seconds if self.monitor.online else self.offline_probe_seconds
            self._wake.wait(timeout=timeout)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="sync-runner", daemon=True)
        self._thread.start()
        logger.info("Sync runner started (every %.0fs).", self.interval_seconds)

    def stop(self) -> None:
        if not self._thread:
            return
        self._stop_event.set()
        self._wake.set()
        self._thread.join(timeout=5)
        self._thread = None
        logger.info("Sync runner stopped.")


__all__ = ["ConnectivityMonitor", "SyncRunner"]
