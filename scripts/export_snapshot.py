import argparse
import json

from _store import open_inventory
from sqlalchemy.exc import SQLAlchemyError

from stocksync.core.errors import ApiError
from stocksync.core.logging import setup_logging
from stocksync.services.snapshot_service import export_snapshot


def parse_args():
    parser = argparse.ArgumentParser(description="Export one inventory as a JSON snapshot.")
    parser.add_argument("--inventory", default=None, help="Inventory id (default: active).")
    parser.add_argument("--out", required=True, help="Destination .json file.")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    try:
        context, stores = open_inventory(args.inventory)
    except ApiError as exc:
        raise SystemExit(f"Export failed: {exc.message}") from exc
    try:
        with context.store.session_scope() as db:
            snapshot = export_snapshot(db)
    except SQLAlchemyError as exc:
        raise SystemExit(f"Export failed: {exc}") from exc
    finally:
        stores.close_all()

    with open(args.out, "w", encoding="utf-8") as handle:
        json.dump(snapshot, handle, indent=2, sort_keys=True)
    print(f"Exported {len(snapshot['items'])} items from {context.inventory_id} to {args.out}")


if __name__ == "__main__":
    main()
