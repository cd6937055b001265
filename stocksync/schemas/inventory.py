from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


class RegistryEntry(BaseModel):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    data_dir: str = Field(validation_alias=AliasChoices("dataDir", "data_dir"))


class RegistryFile(BaseModel):
    """On-disk inventory registry: ``{activeId, inventories: [...]}``."""

    active_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("activeId", "active_id"),
    )
    inventories: List[RegistryEntry] = []


class InventoryRead(BaseModel):
    id: str
    name: str


class InventoryListResponse(BaseModel):
    active_id: str
    inventories: List[InventoryRead]
