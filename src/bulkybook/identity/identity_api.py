"""Identity pages under ``/Identity/Account``.

Covers local sign-in with email confirmation, registration, password reset
and the Google/Facebook external login round trip. Pages are rendered from
``Identity/Account/*.html``.
"""

from __future__ import annotations

import secrets
from typing import Annotated, Any
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Form, Request, status
from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse, Response

from ..config import AppConfig
from ..exceptions import EmailDeliveryError, ExternalLoginError
from ..notifications import DummyEmailSender, EmailSender
from ..services.registry import ServiceRegistry
from ..web.dependencies import (
    get_cookie_options,
    get_email_sender,
    get_external_logins,
    get_services,
    get_token_service,
    get_user_manager,
)
from ..web.templating import render
from .cookies import CookieAuthenticationOptions, is_local_url, sign_in, sign_out
from .errors import IdentityError, InvalidTokenError
from .external import ExternalLoginRegistry, ExternalUserInfo
from .roles import ROLE_USER_INDIVIDUAL
from .tokens import TokenService
from .user_manager import UserManager

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/Identity/Account", tags=["Identity"], include_in_schema=False)

OAUTH_STATE_KEY = "oauth_state"

UserManagerDep = Annotated[UserManager, Depends(get_user_manager)]
TokensDep = Annotated[TokenService, Depends(get_token_service)]
CookieOptionsDep = Annotated[CookieAuthenticationOptions, Depends(get_cookie_options)]
SenderDep = Annotated[EmailSender, Depends(get_email_sender)]
ExternalLoginsDep = Annotated[ExternalLoginRegistry, Depends(get_external_logins)]


def get_app_config(services: Annotated[ServiceRegistry, Depends(get_services)]) -> AppConfig:
    return services.resolve(ServiceRegistry.APP_CONFIG)


ConfigDep = Annotated[AppConfig, Depends(get_app_config)]


def _page(request: Request, name: str, context: dict[str, Any] | None = None, *, status_code: int = 200) -> Response:
    return render(request, f"Identity/Account/{name}.html", context, status_code=status_code)


def _safe_return_url(return_url: str | None) -> str:
    return return_url if is_local_url(return_url) else "/"


def _account_link(config: AppConfig, page: str, **params: str) -> str:
    base = config.application.base_url.rstrip("/")
    return f"{base}/Identity/Account/{page}?{urlencode(params)}"


def _login_page(
    request: Request,
    external_logins: ExternalLoginRegistry,
    *,
    return_url: str | None = None,
    email: str = "",
    error: str | None = None,
    status_code: int = 200,
) -> Response:
    return _page(
        request,
        "Login",
        {
            "return_url": return_url or "",
            "email": email,
            "error": error,
            "providers": external_logins.schemes(),
        },
        status_code=status_code,
    )


def _signed_in_redirect(
    user,
    *,
    roles: list[str],
    tokens: TokenService,
    cookie_options: CookieAuthenticationOptions,
    return_url: str | None,
) -> RedirectResponse:
    response = RedirectResponse(_safe_return_url(return_url), status_code=status.HTTP_302_FOUND)
    sign_in(
        response,
        tokens=tokens,
        options=cookie_options,
        user_id=user.id,
        email=user.email,
        name=user.name,
        roles=roles,
    )
    logger.info("identity.sign_in", user_id=user.id)
    return response


@router.get("/Login", name="login")
def login_form(
    request: Request,
    external_logins: ExternalLoginsDep,
) -> Response:
    return _login_page(request, external_logins, return_url=request.query_params.get("ReturnUrl"))


@router.post("/Login")
def login(
    request: Request,
    user_manager: UserManagerDep,
    tokens: TokensDep,
    cookie_options: CookieOptionsDep,
    external_logins: ExternalLoginsDep,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    return_url: Annotated[str | None, Form(alias="ReturnUrl")] = None,
) -> Response:
    user = user_manager.find_by_email(email) if email else None
    if user is None or not user_manager.check_password(user, password):
        logger.info("identity.login.failed", reason="invalid_credentials")
        return _login_page(
            request,
            external_logins,
            return_url=return_url,
            email=email,
            error="Invalid login attempt.",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if not user.email_confirmed:
        logger.info("identity.login.failed", reason="email_not_confirmed", user_id=user.id)
        return _login_page(
            request,
            external_logins,
            return_url=return_url,
            email=email,
            error="You must confirm your email before signing in.",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return _signed_in_redirect(
        user,
        roles=user_manager.get_roles(user),
        tokens=tokens,
        cookie_options=cookie_options,
        return_url=return_url,
    )


@router.api_route("/Logout", methods=["GET", "POST"], name="logout")
async def logout(request: Request, cookie_options: CookieOptionsDep) -> Response:
    return_url = request.query_params.get("ReturnUrl")
    if request.method == "POST":
        form = await request.form()
        return_url = form.get("ReturnUrl") or return_url
    request.session.clear()
    response = RedirectResponse(_safe_return_url(return_url), status_code=status.HTTP_302_FOUND)
    sign_out(response, options=cookie_options)
    return response


@router.get("/AccessDenied", name="access_denied")
def access_denied(request: Request) -> Response:
    return _page(
        request,
        "AccessDenied",
        {"return_url": request.query_params.get("ReturnUrl", "")},
        status_code=status.HTTP_403_FORBIDDEN,
    )


@router.get("/Register")
def register_form(request: Request) -> Response:
    return _page(request, "Register", {"errors": [], "values": {}})


@router.post("/Register")
async def register(
    request: Request,
    user_manager: UserManagerDep,
    sender: SenderDep,
    config: ConfigDep,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    confirm_password: Annotated[str, Form()] = "",
    name: Annotated[str, Form()] = "",
    phone_number: Annotated[str | None, Form()] = None,
    street_address: Annotated[str | None, Form()] = None,
    city: Annotated[str | None, Form()] = None,
    state: Annotated[str | None, Form()] = None,
    postal_code: Annotated[str | None, Form()] = None,
) -> Response:
    values = {
        "email": email,
        "name": name,
        "phone_number": phone_number,
        "street_address": street_address,
        "city": city,
        "state": state,
        "postal_code": postal_code,
    }
    errors: list[str] = []
    if not email or "@" not in email:
        errors.append("A valid email is required.")
    if not name:
        errors.append("Name is required.")
    if password != confirm_password:
        errors.append("The password and confirmation password do not match.")
    if not errors:
        try:
            user, code = await run_in_threadpool(
                _create_local_account,
                user_manager,
                email=email,
                password=password,
                name=name,
                phone_number=phone_number,
                street_address=street_address,
                city=city,
                state=state,
                postal_code=postal_code,
            )
        except IdentityError as exc:
            errors.append(str(exc))
    if errors:
        return _page(
            request,
            "Register",
            {"errors": errors, "values": values},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    link = _account_link(config, "ConfirmEmail", userId=user.id, code=code)
    try:
        await sender.send_email(
            user.email,
            "Confirm your email",
            f'Please confirm your account by <a href="{link}">clicking here</a>.',
        )
    except EmailDeliveryError:
        logger.exception("identity.register.confirmation_not_sent", user_id=user.id)
    return RedirectResponse(
        f"/Identity/Account/RegisterConfirmation?{urlencode({'email': user.email})}",
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/RegisterConfirmation")
def register_confirmation(
    request: Request,
    user_manager: UserManagerDep,
    sender: SenderDep,
    config: ConfigDep,
) -> Response:
    email = request.query_params.get("email", "")
    user = user_manager.find_by_email(email) if email else None
    if user is None:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    confirm_link = None
    # Without a real sender the link is shown on the page instead.
    if isinstance(sender, DummyEmailSender) and not user.email_confirmed:
        code = user_manager.generate_email_confirmation_token(user)
        confirm_link = _account_link(config, "ConfirmEmail", userId=user.id, code=code)
    return _page(request, "RegisterConfirmation", {"email": user.email, "confirm_link": confirm_link})


@router.get("/ConfirmEmail")
def confirm_email(request: Request, user_manager: UserManagerDep) -> Response:
    user_id = request.query_params.get("userId")
    code = request.query_params.get("code")
    if not user_id or not code:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    user = user_manager.find_by_id(user_id)
    if user is None:
        return _page(request, "ConfirmEmail", {"confirmed": False}, status_code=status.HTTP_404_NOT_FOUND)
    try:
        user_manager.confirm_email(user, code)
    except InvalidTokenError as exc:
        logger.info("identity.confirm_email.rejected", user_id=user_id, reason=str(exc))
        return _page(request, "ConfirmEmail", {"confirmed": False}, status_code=status.HTTP_400_BAD_REQUEST)
    logger.info("identity.confirm_email.confirmed", user_id=user_id)
    return _page(request, "ConfirmEmail", {"confirmed": True})


@router.get("/ForgotPassword")
def forgot_password_form(request: Request) -> Response:
    return _page(request, "ForgotPassword", {"email": ""})


@router.post("/ForgotPassword")
async def forgot_password(
    user_manager: UserManagerDep,
    sender: SenderDep,
    config: ConfigDep,
    email: Annotated[str, Form()] = "",
) -> Response:
    pending = await run_in_threadpool(_password_reset_code, user_manager, email) if email else None
    # Unknown or unconfirmed accounts get the same response.
    if pending is not None:
        user, code = pending
        link = _account_link(config, "ResetPassword", userId=user.id, code=code)
        try:
            await sender.send_email(
                user.email,
                "Reset Password",
                f'Please reset your password by <a href="{link}">clicking here</a>.',
            )
        except EmailDeliveryError:
            logger.exception("identity.forgot_password.not_sent", user_id=user.id)
    return RedirectResponse("/Identity/Account/ForgotPasswordConfirmation", status_code=status.HTTP_302_FOUND)


@router.get("/ForgotPasswordConfirmation")
def forgot_password_confirmation(request: Request) -> Response:
    return _page(request, "ForgotPasswordConfirmation")


@router.get("/ResetPassword")
def reset_password_form(request: Request) -> Response:
    code = request.query_params.get("code")
    if not code:
        return _page(
            request,
            "ResetPassword",
            {"errors": ["A code must be supplied for password reset."], "code": "", "user_id": ""},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return _page(
        request,
        "ResetPassword",
        {"errors": [], "code": code, "user_id": request.query_params.get("userId", "")},
    )


@router.post("/ResetPassword")
def reset_password(
    request: Request,
    user_manager: UserManagerDep,
    user_id: Annotated[str, Form(alias="userId")] = "",
    code: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    confirm_password: Annotated[str, Form()] = "",
) -> Response:
    done = RedirectResponse("/Identity/Account/ResetPasswordConfirmation", status_code=status.HTTP_302_FOUND)
    user = user_manager.find_by_id(user_id) if user_id else None
    if user is None:
        return done
    errors: list[str] = []
    if password != confirm_password:
        errors.append("The password and confirmation password do not match.")
    else:
        try:
            user_manager.reset_password(user, code, password)
        except IdentityError as exc:
            errors.append(str(exc))
    if errors:
        return _page(
            request,
            "ResetPassword",
            {"errors": errors, "code": code, "user_id": user_id},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    logger.info("identity.reset_password.done", user_id=user.id)
    return done


@router.get("/ResetPasswordConfirmation")
def reset_password_confirmation(request: Request) -> Response:
    return _page(request, "ResetPasswordConfirmation")


@router.post("/ExternalLogin")
def external_login(
    request: Request,
    external_logins: ExternalLoginsDep,
    provider: Annotated[str, Form()] = "",
    return_url: Annotated[str | None, Form(alias="ReturnUrl")] = None,
) -> Response:
    state = secrets.token_urlsafe(32)
    redirect_uri = str(request.url_for("external_login_callback"))
    try:
        handler = external_logins.get(provider)
        challenge = handler.build_challenge_url(redirect_uri=redirect_uri, state=state)
    except ExternalLoginError as exc:
        logger.warning("identity.external.challenge_failed", provider=provider, reason=str(exc))
        return _login_page(
            request,
            external_logins,
            return_url=return_url,
            error=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    request.session[OAUTH_STATE_KEY] = {
        "state": state,
        "provider": handler.name,
        "return_url": _safe_return_url(return_url),
    }
    return RedirectResponse(challenge, status_code=status.HTTP_302_FOUND)


@router.get("/ExternalLoginCallback", name="external_login_callback")
async def external_login_callback(
    request: Request,
    user_manager: UserManagerDep,
    tokens: TokensDep,
    cookie_options: CookieOptionsDep,
    external_logins: ExternalLoginsDep,
) -> Response:
    pending = request.session.pop(OAUTH_STATE_KEY, None)
    params = request.query_params

    def failed(message: str) -> Response:
        return _login_page(
            request,
            external_logins,
            error=message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if params.get("error"):
        return failed(f"Error from external provider: {params['error']}")
    if not pending or not secrets.compare_digest(str(pending.get("state", "")), params.get("state", "")):
        return failed("Error loading external login information.")
    code = params.get("code")
    if not code:
        return failed("Error loading external login information.")
    try:
        handler = external_logins.get(pending["provider"])
        info = await handler.complete(code=code, redirect_uri=str(request.url_for("external_login_callback")))
        user, roles = await run_in_threadpool(_external_account, user_manager, info, handler.display_name)
    except (ExternalLoginError, IdentityError) as exc:
        logger.warning("identity.external.callback_failed", provider=pending.get("provider"), reason=str(exc))
        return failed(str(exc))
    return _signed_in_redirect(
        user,
        roles=roles,
        tokens=tokens,
        cookie_options=cookie_options,
        return_url=pending.get("return_url"),
    )


def _create_local_account(user_manager: UserManager, *, email: str, password: str, **profile: Any):
    user = user_manager.create(email=email, password=password, **profile)
    user_manager.add_to_role(user, ROLE_USER_INDIVIDUAL)
    return user, user_manager.generate_email_confirmation_token(user)


def _password_reset_code(user_manager: UserManager, email: str):
    user = user_manager.find_by_email(email)
    if user is None or not user.email_confirmed:
        return None
    return user, user_manager.generate_password_reset_token(user)


def _external_account(user_manager: UserManager, info: ExternalUserInfo, display_name: str):
    """Account already linked to the external login, or a new one created for it.

    An email that belongs to an existing local account is refused, not linked.
    """
    user = user_manager.find_by_login(info.provider, info.provider_key)
    if user is None:
        if not info.email:
            raise ExternalLoginError(f"{display_name} did not share an email address")
        if not info.email_verified:
            raise ExternalLoginError(f"{display_name} has not verified the email address {info.email}")
        if user_manager.find_by_email(info.email) is not None:
            logger.warning("identity.external.email_taken", provider=info.provider)
            raise ExternalLoginError(
                f"An account already exists for {info.email}. Sign in with your password instead of {display_name}."
            )
        user = user_manager.create(email=info.email, name=info.name or info.email, email_confirmed=True)
        user_manager.add_to_role(user, ROLE_USER_INDIVIDUAL)
        user_manager.add_login(user, info.provider, info.provider_key, display_name)
        logger.info("identity.external.account_created", provider=info.provider, user_id=user.id)
    return user, user_manager.get_roles(user)


__all__ = ["OAUTH_STATE_KEY", "router"]
