INVENTORY_HEADER = "X-Inventory-Id"

SNAPSHOT_SCHEMA_VERSION = 1

ROLE_RANKS = {
    "owner": 3,
    "admin": 3,
    "editor": 2,
    "collaborator": 2,
    "viewer": 1,
    "read_only": 1,
    "readonly": 1,
}

DEFAULT_SYNC_LOG_LIMIT = 50
