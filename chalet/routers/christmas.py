import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..schemas.christmas import ChristmasCodeCreate, ChristmasPeriodCreate, ChristmasPeriodResponse
from ..services.inventory_store import InventoryStore
from ..utils.dependencies import get_store, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/christmas", tags=["Christmas"])


@router.get("/periods", response_model=List[ChristmasPeriodResponse])
async def list_periods(store: InventoryStore = Depends(get_store)):
    return store.christmas.list_periods()


@router.post(
    "/periods",
    response_model=ChristmasPeriodResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_period(data: ChristmasPeriodCreate, store: InventoryStore = Depends(get_store)):
    with store.transaction("creating a Christmas period"):
        period = store.christmas.create_period(data.start_date, data.end_date, data.name)
        period_id = period.id

    logger.info(f"Christmas period created: {period_id} {data.start_date}..{data.end_date}")
    return store.christmas.get_period(period_id)


@router.delete("/periods/{period_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_period(period_id: str, store: InventoryStore = Depends(get_store)):
    with store.transaction("deleting a Christmas period"):
        deleted = store.christmas.delete_period(period_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Christmas period not found")

    logger.info(f"Christmas period deleted: {period_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/codes", response_model=List[str], dependencies=[Depends(require_admin)])
async def list_codes(store: InventoryStore = Depends(get_store)):
    return store.christmas.list_codes()


@router.post("/codes", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def add_code(data: ChristmasCodeCreate, store: InventoryStore = Depends(get_store)):
    with store.transaction("adding a Christmas access code"):
        store.christmas.add_code(data.code)
    return {"code": data.code}


@router.delete("/codes/{code}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_code(code: str, store: InventoryStore = Depends(get_store)):
    with store.transaction("deleting a Christmas access code"):
        deleted = store.christmas.delete_code(code)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access code not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
