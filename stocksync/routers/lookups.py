from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stocksync.dependencies import get_db, require_edit
from stocksync.schemas.lookup import CategoryIn, CategoryRead, LocationIn, LocationRead
from stocksync.services import lookup_service

router = APIRouter(tags=["Lookups"])


@router.get("/categories", response_model=List[CategoryRead])
def get_categories(db: Session = Depends(get_db)):
    return lookup_service.list_categories(db)


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def post_category(payload: CategoryIn, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    return lookup_service.create_category(db, payload.name)


@router.put("/categories/{category_id}", response_model=CategoryRead)
def put_category(
    category_id: int,
    payload: CategoryIn,
    db: Session = Depends(get_db),
    _auth=Depends(require_edit),
):
    return lookup_service.rename_category(db, category_id, payload.name)


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    touched = lookup_service.delete_category(db, category_id)
    return {"ok": True, "items_updated": touched}


@router.get("/locations", response_model=List[LocationRead])
def get_locations(db: Session = Depends(get_db)):
    return lookup_service.list_locations(db)


@router.post("/locations", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
def post_location(payload: LocationIn, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    return lookup_service.create_location(db, payload.name, payload.parent_id)


@router.put("/locations/{location_id}", response_model=LocationRead)
def put_location(
    location_id: int,
    payload: LocationIn,
    db: Session = Depends(get_db),
    _auth=Depends(require_edit),
):
    return lookup_service.update_location(db, location_id, payload.name, payload.parent_id)


@router.delete("/locations/{location_id}")
def delete_location(location_id: int, db: Session = Depends(get_db), _auth=Depends(require_edit)):
    touched = lookup_service.delete_location(db, location_id)
    return {"ok": True, "items_updated": touched}


__all__ = ["router"]
