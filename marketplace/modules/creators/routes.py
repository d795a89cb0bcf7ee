from fastapi import APIRouter, Depends, Query
from marketplace.core.auth_context import AuthContext
from marketplace.core.contracts import Session
from marketplace.core.dependencies import get_auth_context, require_complete_profile
from marketplace.modules.creators.schemas import CreatorCreate, CreatorResponse, CreatorUpdate
from marketplace.modules.creators.service import CreatorService
from typing import List

router = APIRouter(tags=["creators"])


def get_creator_service(context: AuthContext = Depends(get_auth_context)) -> CreatorService:
    return CreatorService(context.data)


@router.get("/creators", response_model=List[CreatorResponse])
async def list_creators(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: CreatorService = Depends(get_creator_service)
):
    """Public creator directory, newest first"""
    return await service.list_creators(limit=limit, offset=offset)


@router.get("/creators/{user_id}", response_model=CreatorResponse)
async def get_creator(
    user_id: str,
    service: CreatorService = Depends(get_creator_service)
):
    return await service.get_creator(user_id)


@router.get("/account/creator", response_model=CreatorResponse)
async def get_my_creator(
    session: Session = Depends(require_complete_profile),
    service: CreatorService = Depends(get_creator_service)
):
    return await service.get_creator(session.user_id)


@router.post("/account/creator", response_model=CreatorResponse, status_code=201)
async def create_my_creator(
    creator_data: CreatorCreate,
    session: Session = Depends(require_complete_profile),
    service: CreatorService = Depends(get_creator_service)
):
    """Create the caller's creator listing"""
    return await service.create_creator(session.user_id, creator_data)


@router.put("/account/creator", response_model=CreatorResponse)
async def update_my_creator(
    creator_data: CreatorUpdate,
    session: Session = Depends(require_complete_profile),
    service: CreatorService = Depends(get_creator_service)
):
    return await service.update_creator(session.user_id, creator_data)


@router.delete("/account/creator", status_code=204)
async def delete_my_creator(
    session: Session = Depends(require_complete_profile),
    service: CreatorService = Depends(get_creator_service)
):
    await service.delete(session.user_id)
    return None
