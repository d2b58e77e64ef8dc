from typing import List

from fastapi import APIRouter, Depends

from ..schemas.room import RoomResponse
from ..services.inventory_store import InventoryStore
from ..utils.dependencies import get_store

router = APIRouter(prefix="/api/rooms", tags=["Rooms"])


@router.get("", response_model=List[RoomResponse])
async def list_rooms(store: InventoryStore = Depends(get_store)):
    return store.rooms.list_all()
