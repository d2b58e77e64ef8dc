from typing import List

from fastapi import APIRouter, Depends, Request, Response, status

from ..schemas.hold import HoldCreate, HoldCreatedResponse, HoldResponse, HoldsDeletedResponse
from ..services.hold_manager import HoldManager
from ..utils.dependencies import get_hold_manager
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/holds", tags=["Holds"])


@router.post("", response_model=HoldCreatedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("hold_create"))
async def create_hold(
    request: Request,
    data: HoldCreate,
    holds: HoldManager = Depends(get_hold_manager),
):
    """Provisionally hold rooms for a session; the hold expires on its own."""
    proposal_id = holds.create_hold(
        session_id=data.session_id,
        start=data.start_date,
        end=data.end_date,
        room_ids=data.room_ids,
        composition=data.guests.to_domain(),
        total_price=data.total_price,
    )
    proposal = holds.get_hold(proposal_id)
    return {"proposal_id": proposal.proposal_id, "expires_at": proposal.expires_at}


@router.get("/session/{session_id}", response_model=List[HoldResponse])
async def list_session_holds(session_id: str, holds: HoldManager = Depends(get_hold_manager)):
    return holds.list_active_by_session(session_id)


@router.delete("/session/{session_id}", response_model=HoldsDeletedResponse)
async def delete_session_holds(session_id: str, holds: HoldManager = Depends(get_hold_manager)):
    return {"session_id": session_id, "deleted": holds.delete_holds_by_session(session_id)}


@router.get("/{proposal_id}", response_model=HoldResponse)
async def get_hold(proposal_id: str, holds: HoldManager = Depends(get_hold_manager)):
    return holds.get_hold(proposal_id)


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hold(proposal_id: str, holds: HoldManager = Depends(get_hold_manager)):
    holds.delete_hold(proposal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
