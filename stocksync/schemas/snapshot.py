from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from stocksync.core.constants import SNAPSHOT_SCHEMA_VERSION


class SnapshotCategory(BaseModel):
    id: Optional[int] = None
    name: str


class SnapshotLocation(BaseModel):
    id: Optional[int] = None
    name: str
    parent_id: Optional[int] = None


class SnapshotItem(BaseModel):
    id: int
    name: str = Field(min_length=1)
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=0)
    barcode: Optional[str] = None
    barcode_corrupted: bool = False
    category_id: Optional[int] = None
    location_id: Optional[int] = None
    purchase_date: Optional[str] = None
    warranty_info: Optional[str] = None
    value: Optional[float] = None
    serial_number: Optional[str] = None
    photo_path: Optional[str] = None
    deleted: bool = False
    last_modified: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class SnapshotBarcode(BaseModel):
    barcode: str = Field(min_length=1)
    item_id: int
    created_at: Optional[int] = None


class SnapshotIn(BaseModel):
    """Full export of one inventory as accepted by ``POST /import``."""

    schema_version: int = Field(
        default=SNAPSHOT_SCHEMA_VERSION,
        validation_alias=AliasChoices("schema", "schema_version"),
    )
    exported_at_ms: Optional[int] = None
    categories: List[SnapshotCategory] = []
    locations: List[SnapshotLocation] = []
    items: List[SnapshotItem] = []
    item_barcodes: List[SnapshotBarcode] = []

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ImportResult(BaseModel):
    categories_added: int = 0
    locations_added: int = 0
    items_inserted: int = 0
    items_updated: int = 0
    items_skipped: int = 0
    barcodes_added: int = 0


class SyncLogRead(BaseModel):
    id: int
    sync_time: int
    source: str
    details: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
