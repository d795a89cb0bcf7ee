from fastapi import APIRouter, Depends, Query
from marketplace.core.auth_context import AuthContext
from marketplace.core.contracts import Session
from marketplace.core.dependencies import get_auth_context, require_complete_profile
from marketplace.modules.businesses.schemas import BusinessCreate, BusinessResponse, BusinessUpdate
from marketplace.modules.businesses.service import BusinessService
from typing import List

router = APIRouter(tags=["businesses"])


def get_business_service(context: AuthContext = Depends(get_auth_context)) -> BusinessService:
    return BusinessService(context.data)


@router.get("/businesses", response_model=List[BusinessResponse])
async def list_businesses(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: BusinessService = Depends(get_business_service)
):
    """Public business directory, newest first"""
    return await service.list_businesses(limit=limit, offset=offset)


@router.get("/businesses/{user_id}", response_model=BusinessResponse)
async def get_business(
    user_id: str,
    service: BusinessService = Depends(get_business_service)
):
    return await service.get_business(user_id)


@router.get("/account/business", response_model=BusinessResponse)
async def get_my_business(
    session: Session = Depends(require_complete_profile),
    service: BusinessService = Depends(get_business_service)
):
    return await service.get_business(session.user_id)


@router.post("/account/business", response_model=BusinessResponse, status_code=201)
async def create_my_business(
    business_data: BusinessCreate,
    session: Session = Depends(require_complete_profile),
    context: AuthContext = Depends(get_auth_context),
    service: BusinessService = Depends(get_business_service)
):
    """Create the caller's business listing; email defaults to the profile email"""
    profile = context.gate.profile
    default_email = (profile.email if profile else None) or session.email
    return await service.create_business(session.user_id, business_data, default_email=default_email)


@router.put("/account/business", response_model=BusinessResponse)
async def update_my_business(
    business_data: BusinessUpdate,
    session: Session = Depends(require_complete_profile),
    service: BusinessService = Depends(get_business_service)
):
    return await service.update_business(session.user_id, business_data)


@router.delete("/account/business", status_code=204)
async def delete_my_business(
    session: Session = Depends(require_complete_profile),
    service: BusinessService = Depends(get_business_service)
):
    await service.delete(session.user_id)
    return None
