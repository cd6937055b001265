import argparse

from _store import open_inventory
from sqlalchemy.exc import SQLAlchemyError

from stocksync.core.errors import ApiError
from stocksync.core.logging import setup_logging
from stocksync.services import item_service, lookup_service

SAMPLE_CATEGORIES = ["Tools", "Electronics", "Kitchen"]
SAMPLE_LOCATIONS = ["Garage", "Office", "Pantry"]
SAMPLE_ITEMS = [
    {"name": "Cordless Drill", "barcode": "4006381333931", "quantity": 1, "category": "Tools", "location": "Garage"},
    {"name": "Screwdriver Set", "barcode": "4006381333948", "quantity": 2, "category": "Tools", "location": "Garage"},
    {"name": "USB-C Charger", "barcode": "0885909950805", "quantity": 3, "category": "Electronics", "location": "Office"},
    {"name": "Coffee Beans", "barcode": "8711000530092", "quantity": 4, "category": "Kitchen", "location": "Pantry"},
]


def parse_args():
    parser = argparse.ArgumentParser(description="Seed an inventory with sample data.")
    parser.add_argument("--inventory", default=None, help="Inventory id (default: active).")
    return parser.parse_args()


def seed(db):
    categories = {row.name: row.id for row in lookup_service.list_categories(db)}
    for name in SAMPLE_CATEGORIES:
        if name not in categories:
            categories[name] = lookup_service.create_category(db, name).id
    locations = {row.name: row.id for row in lookup_service.list_locations(db)}
    for name in SAMPLE_LOCATIONS:
        if name not in locations:
            locations[name] = lookup_service.create_location(db, name).id

    existing = {row.barcode for row in item_service.list_items(db, include_deleted=True)}
    created = 0
    for sample in SAMPLE_ITEMS:
        if sample["barcode"] in existing:
            continue
        item_service.create_item(
            db,
            {
                "name": sample["name"],
                "barcode": sample["barcode"],
                "quantity": sample["quantity"],
                "category_id": categories[sample["category"]],
                "location_id": locations[sample["location"]],
            },
        )
        created += 1
    return created


def main():
    setup_logging()
    args = parse_args()
    try:
        context, stores = open_inventory(args.inventory)
    except ApiError as exc:
        raise SystemExit(f"Seed failed: {exc.message}") from exc
    try:
        with context.store.session_scope() as db:
            created = seed(db)
    except (SQLAlchemyError, ApiError) as exc:
        raise SystemExit(f"Seed failed: {exc}") from exc
    finally:
        stores.close_all()
    print(f"Seeded {created} items into {context.inventory_id}")


if __name__ == "__main__":
    main()
