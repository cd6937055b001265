from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stocksync.models.item import ItemState


class ItemBase(BaseModel):
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


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    """Partial update; ``last_modified`` is the version the client last saw."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    barcode: Optional[str] = None
    barcode_corrupted: Optional[bool] = None
    category_id: Optional[int] = None
    location_id: Optional[int] = None
    purchase_date: Optional[str] = None
    warranty_info: Optional[str] = None
    value: Optional[float] = None
    serial_number: Optional[str] = None
    photo_path: Optional[str] = None
    deleted: Optional[bool] = None
    last_modified: Optional[int] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        data.pop("last_modified", None)
        if data.get("name") is None:
            data.pop("name", None)
        for key in ("quantity", "barcode_corrupted", "deleted"):
            if key in data and data[key] is None:
                data.pop(key)
        return data


class ItemRead(ItemBase):
    id: int
    name: str
    quantity: int
    deleted: bool
    state: ItemState
    last_modified: int

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class ItemListResponse(BaseModel):
    items: List[ItemRead]
    deleted: List[int] = []
    server_time: int


class ItemEnvelope(BaseModel):
    item: ItemRead


class BarcodeAttach(BaseModel):
    barcode: str = Field(min_length=1)


class ItemBarcodeRead(BaseModel):
    barcode: str
    item_id: int
    created_at: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ItemBarcodeListResponse(BaseModel):
    barcodes: List[ItemBarcodeRead]
    server_time: int
