from typing import Any, List

from pydantic import BaseModel, Field, field_validator


class ScanEventIn(BaseModel):
    """One offline scan.

    Fields are left untyped here; the scan processor checks each event on
    its own so a bad event yields an ``error`` result for that event only.
    """

    event_id: Any = None
    barcode: Any = None
    delta: Any = 1
    item_id: Any = None
    scanned_at: Any = None


class ScanBatchRequest(BaseModel):
    events: List[ScanEventIn] = Field(max_length=500)

    @field_validator("events", mode="before")
    @classmethod
    def _objects_only(cls, value):
        if isinstance(value, list):
            return [entry if isinstance(entry, (dict, ScanEventIn)) else {} for entry in value]
        return value


class BarcodeResolveRequest(BaseModel):
    barcode: str = Field(min_length=1)
