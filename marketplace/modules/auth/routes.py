from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import ValidationError as PydanticValidationError
from typing import Optional

from marketplace.config import settings
from marketplace.core.auth_context import AuthContext
from marketplace.core.dependencies import get_auth_context
from marketplace.core.exceptions import ValidationError
from marketplace.core.rate_limit import limiter
from marketplace.core.route_gate import AuthState, DASHBOARD_PATH, SIGN_IN_PATH
from marketplace.modules.auth.schemas import (
    CompleteProfileForm, ScreenResponse, SignInRequest, SignUpForm
)
from marketplace.modules.auth.service import AuthFlowService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_flow_service(context: AuthContext = Depends(get_auth_context)) -> AuthFlowService:
    return AuthFlowService(context)


def redirect(location: str) -> RedirectResponse:
    """Post/redirect/get"""
    return RedirectResponse(location, status_code=303)


# -----------------------------------------------------------------------------
# Sign in / sign up
# -----------------------------------------------------------------------------

@router.get("", response_model=ScreenResponse)
@router.get("/signin", response_model=ScreenResponse)
async def sign_in_screen(
    mode: Optional[str] = None,
    error: Optional[str] = None,
    redirectTo: Optional[str] = None,
    context: AuthContext = Depends(get_auth_context),
):
    """Sign-in screen; ``mode=signup`` switches to sign-up.

    Without an ``error`` parameter, a failed session or profile lookup on this
    request is shown instead.
    """
    screen = "signup" if mode == "signup" else "signin"
    if error is None and context.gate.error is not None:
        error = context.gate.error.message
    return ScreenResponse(screen=screen, error=error, data={"redirect_to": redirectTo})


@router.get("/signup", response_model=ScreenResponse)
async def sign_up_screen(
    error: Optional[str] = None,
    context: AuthContext = Depends(get_auth_context),
):
    if error is None and context.gate.error is not None:
        error = context.gate.error.message
    return ScreenResponse(screen="signup", error=error)


@router.post("/signin")
@limiter.limit(settings.auth_rate_limit)
async def sign_in(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    redirectTo: Optional[str] = None,
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    """Password sign in, then on to the dashboard or profile completion"""
    try:
        credentials = SignInRequest(email=email, password=password)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, screen="signin")
    location = await service.sign_in(credentials.email, credentials.password, redirectTo)
    return redirect(location)


@router.post("/signup")
@limiter.limit(settings.auth_rate_limit)
async def sign_up(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    username: str = Form(...),
    photo: Optional[UploadFile] = File(None),
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    try:
        form = SignUpForm(email=email, password=password, username=username)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, screen="signup")
    return redirect(await service.sign_up(form, photo))


@router.get("/check-email", response_model=ScreenResponse)
async def check_email_screen(context: AuthContext = Depends(get_auth_context)):
    """Waiting for the confirmation link"""
    session = context.gate.session
    return ScreenResponse(screen="check-email", data={"email": session.email if session else None})


@router.post("/check-email")
async def recheck_email(service: AuthFlowService = Depends(get_auth_flow_service)):
    """Re-check after the user says they confirmed their email"""
    location = await service.recheck_confirmation()
    if location is None:
        return ScreenResponse(
            screen="check-email",
            notice="We could not find a confirmed session yet. Open the link in your email, then try again.",
        )
    return redirect(location)


# -----------------------------------------------------------------------------
# OAuth and email links
# -----------------------------------------------------------------------------

@router.get("/google-signin")
async def google_sign_in(service: AuthFlowService = Depends(get_auth_flow_service)):
    return RedirectResponse(await service.start_oauth(), status_code=303)


@router.get("/oauth-callback")
async def oauth_callback(
    request: Request,
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    return redirect(await service.handle_oauth_callback(request.query_params))


@router.get("/callback")
async def email_callback(
    request: Request,
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    """Email confirmation landing; errors render the blocking auth-error screen"""
    return redirect(await service.handle_email_callback(request.query_params))


# -----------------------------------------------------------------------------
# Complete profile
# -----------------------------------------------------------------------------

@router.get("/complete-profile")
async def complete_profile_screen(
    context: AuthContext = Depends(get_auth_context),
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    gate = context.gate
    if gate.session is None:
        return redirect(SIGN_IN_PATH)
    if gate.state == AuthState.AUTHENTICATED_COMPLETE:
        return redirect(DASHBOARD_PATH)
    return ScreenResponse(screen="complete-profile", data=await service.complete_profile_screen())


@router.post("/complete-profile")
async def complete_profile(
    username: str = Form(...),
    photo: Optional[UploadFile] = File(None),
    service: AuthFlowService = Depends(get_auth_flow_service),
):
    try:
        form = CompleteProfileForm(username=username)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, screen="complete-profile")
    return redirect(await service.complete_profile(form, photo))


@router.post("/signout")
async def sign_out(service: AuthFlowService = Depends(get_auth_flow_service)):
    return redirect(await service.sign_out())
