import argparse
import logging
import sys
import time
from pathlib import Path

# Ensure repo root is on sys.path when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stocksync.client.api_client import SyncApiClient
from stocksync.client.config import ClientSettings
from stocksync.client.local_cache import LocalCache
from stocksync.client.network import ConnectivityMonitor, SyncRunner
from stocksync.client.pending import PendingOperationStore
from stocksync.client.storage import JsonFileKeyValueStore
from stocksync.client.sync_orchestrator import SyncOrchestrator
from stocksync.core.logging import setup_logging

logger = logging.getLogger("sync_client")


def parse_args():
    parser = argparse.ArgumentParser(description="Run the mobile-style sync loop.")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit.")
    return parser.parse_args()


def main():
    args = parse_args()
    settings = ClientSettings()
    setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    kv = JsonFileKeyValueStore(settings.STATE_PATH)
    api = SyncApiClient.from_settings(settings)
    orchestrator = SyncOrchestrator(
        api,
        LocalCache(kv),
        PendingOperationStore(kv),
        max_scan_retries=settings.QUEUE_MAX_SCAN_RETRIES,
    )
    monitor = ConnectivityMonitor(api, probe_timeout=settings.PROBE_TIMEOUT_SECONDS)
    runner = SyncRunner(orchestrator, monitor, interval_seconds=settings.SYNC_INTERVAL_SECONDS)

    if args.once:
        result = runner.run_cycle()
        if result is None:
            raise SystemExit("Sync server unreachable.")
        print(f"{result.status_line()} ({orchestrator.pending_count()} pending)")
        return

    runner.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping sync client.")
    finally:
        runner.stop()


if __name__ == "__main__":
    main()
