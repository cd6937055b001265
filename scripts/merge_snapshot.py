import argparse
import json

from _store import open_inventory
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from stocksync.core.errors import ApiError
from stocksync.core.logging import setup_logging
from stocksync.schemas.snapshot import SnapshotIn
from stocksync.services.snapshot_service import import_snapshot


def parse_args():
    parser = argparse.ArgumentParser(
        description="Merge a snapshot file into an inventory (last writer wins)."
    )
    parser.add_argument("--path", required=True, help="Snapshot .json file.")
    parser.add_argument("--inventory", default=None, help="Inventory id (default: active).")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    try:
        with open(args.path, "r", encoding="utf-8") as handle:
            snapshot = SnapshotIn.model_validate(json.load(handle))
    except (OSError, ValueError, ValidationError) as exc:
        raise SystemExit(f"Merge failed: {exc}") from exc

    try:
        context, stores = open_inventory(args.inventory)
    except ApiError as exc:
        raise SystemExit(f"Merge failed: {exc.message}") from exc
    try:
        with context.store.session_scope() as db:
            result = import_snapshot(db, snapshot)
    except SQLAlchemyError as exc:
        raise SystemExit(f"Merge failed: {exc}") from exc
    finally:
        stores.close_all()

    print(
        f"{context.inventory_id}: {result.items_inserted} inserted, "
        f"{result.items_updated} updated, {result.items_skipped} skipped; "
        f"{result.categories_added} categories, {result.locations_added} locations, "
        f"{result.barcodes_added} barcodes added"
    )


if __name__ == "__main__":
    main()
