import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from marketplace.config import settings
from marketplace.core.auth_context import AuthContext
from marketplace.core.debounce import Debouncer
from marketplace.core.dependencies import get_auth_context, get_public_resolver
from marketplace.core.exceptions import ResolverError
from marketplace.core.profile_resolver import ProfileResolver
from marketplace.modules.profiles.schemas import USERNAME_MIN_LENGTH, Profile, UsernameAvailability
from marketplace.modules.profiles.service import ProfileService, check_availability

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profiles"])


def get_profile_service(context: AuthContext = Depends(get_auth_context)) -> ProfileService:
    return ProfileService(context.data)


@router.get("/usernames/{username}/availability", response_model=UsernameAvailability)
async def username_availability(
    username: str,
    context: AuthContext = Depends(get_auth_context),
):
    """Check whether a username is free"""
    return await check_availability(context.resolver, username)


@router.get("/profiles/{username}", response_model=Profile)
async def get_profile(
    username: str,
    service: ProfileService = Depends(get_profile_service),
):
    """Public base profile by username"""
    return await service.get_by_username(username)


@router.websocket("/usernames/ws")
async def username_availability_ws(
    websocket: WebSocket,
    resolver: ProfileResolver = Depends(get_public_resolver),
):
    """Live availability while typing.

    The client sends {"username": "..."}; only the last candidate within the
    debounce window is looked up. Short candidates are answered at once.
    """
    await websocket.accept()

    async def send_result(username: str):
        try:
            result = await check_availability(resolver, username)
        except ResolverError as e:
            await websocket.send_json({"username": username, "checked": False, "error": e.message})
            return
        await websocket.send_json(result.model_dump())

    debouncer = Debouncer(settings.username_check_debounce_ms / 1000, send_result)
    try:
        while True:
            message = await websocket.receive_json()
            username = str(message.get("username", "")).strip() if isinstance(message, dict) else ""
            if len(username) < USERNAME_MIN_LENGTH:
                debouncer.cancel()
                result = await check_availability(resolver, username)
                await websocket.send_json(result.model_dump())
                continue
            debouncer.call(username)
    except WebSocketDisconnect:
        logger.debug("Username check socket closed")
    finally:
        debouncer.cancel()
