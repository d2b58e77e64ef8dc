import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from ..exceptions import BlockageNotFoundError, RoomNotFoundError
from ..schemas.blockage import BlockageCreate, BlockageResponse
from ..services.inventory_store import InventoryStore
from ..utils.dependencies import get_store, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blockages", tags=["Blockages"])


@router.get("", response_model=List[BlockageResponse])
async def list_blockages(store: InventoryStore = Depends(get_store)):
    return store.blockages.list_all()


@router.post(
    "",
    response_model=BlockageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_blockage(data: BlockageCreate, store: InventoryStore = Depends(get_store)):
    """Close rooms (or the whole property when room_ids is empty) for the given days."""
    with store.transaction("creating a blockage"):
        known = store.rooms.get_many(data.room_ids)
        for room_id in data.room_ids:
            if room_id not in known:
                raise RoomNotFoundError(room_id)
        blockage = store.blockages.create(data.start_date, data.end_date, data.room_ids, data.reason)
        blockage_id = blockage.id

    logger.info(f"Blockage created: {blockage_id} {data.start_date}..{data.end_date} rooms={data.room_ids or 'all'}")
    return store.blockages.get(blockage_id)


@router.delete("/{blockage_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_blockage(blockage_id: str, store: InventoryStore = Depends(get_store)):
    with store.transaction("deleting a blockage"):
        if not store.blockages.delete(blockage_id):
            raise BlockageNotFoundError(blockage_id)

    logger.info(f"Blockage deleted: {blockage_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
