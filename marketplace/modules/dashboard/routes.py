from fastapi import APIRouter, Depends

from marketplace.core.dependencies import get_gate, require_complete_profile
from marketplace.core.route_gate import RouteGate

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
async def dashboard(
    gate: RouteGate = Depends(get_gate),
    _session=Depends(require_complete_profile),
):
    """Protected landing screen"""
    return {"screen": "dashboard", **gate.snapshot().model_dump(mode="json")}


@router.get("/account")
async def account(
    gate: RouteGate = Depends(get_gate),
    _session=Depends(require_complete_profile),
):
    """Profile plus creator/business listings, reloaded"""
    await gate.refresh_profiles()
    return {"screen": "account", **gate.snapshot().model_dump(mode="json")}
