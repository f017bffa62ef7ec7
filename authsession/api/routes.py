"""
FastAPI routes for login, session lookup and token refresh.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from authsession.clients.identity_provider import OAuthTokenExchangeError, OAuthTransportError
from authsession.dependencies import (
    get_app_settings,
    get_auth_event_handler,
    get_identity_provider_client,
    get_oauth_state_encoder,
    get_primary_session_store,
    get_session_cache,
    get_token_refresher,
)
from authsession.schemas import OAuthCallbackPayload, SessionTokens

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    primary_store: Annotated[Any, Depends(get_primary_session_store)],
) -> dict:
    """Health endpoint for monitoring.

    The service keeps answering from the in-memory store while Redis is down,
    so a missing primary is reported but does not fail the check.
    """
    if primary_store is None:
        primary_state = "disabled"
    elif await primary_store.ping():
        primary_state = "up"
    else:
        primary_state = "down"
    return {"status": "ok", "primary_store": primary_state}


@router.get("/auth/authorize", status_code=HTTPStatus.OK)
async def start_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_identity_provider_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the provider's login page.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state_payload = {
        "nonce": uuid.uuid4().hex,
        "redirect_to": redirect_to,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    state = state_encoder.encode(state_payload)
    authorization_url = oauth_client.build_authorization_url(state=state)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.post("/auth/callback", status_code=HTTPStatus.OK)
async def handle_oauth_callback(
    payload: OAuthCallbackPayload,
    oauth_client: Annotated[Any, Depends(get_identity_provider_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    auth_events: Annotated[Any, Depends(get_auth_event_handler)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Complete the OAuth exchange, record the login and return redirect metadata."""
    state_data = state_encoder.decode(payload.state)

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )

    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc

    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    try:
        grant = await oauth_client.exchange_authorization_code(payload.code)
        claims = await oauth_client.fetch_userinfo(grant.access_token)
    except OAuthTokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc
    except OAuthTransportError as exc:
        logger.warning("Identity provider unreachable during login: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Identity provider is unavailable.",
        ) from exc

    user_id = await auth_events.on_authentication_success(claims, grant)

    return {
        "status": "authenticated",
        "user_id": user_id,
        "redirect_to": state_data.get("redirect_to"),
    }


@router.get("/auth/callback", status_code=HTTPStatus.OK)
async def handle_oauth_callback_get(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_identity_provider_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    auth_events: Annotated[Any, Depends(get_auth_event_handler)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by the provider."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    payload = OAuthCallbackPayload(state=state, code=code)
    result = await handle_oauth_callback(
        payload=payload,
        oauth_client=oauth_client,
        state_encoder=state_encoder,
        auth_events=auth_events,
        settings=settings,
    )

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    redirect_target = result.get("redirect_to") or settings.frontend_base_url

    if redirect_target and (redirect or wants_html):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result)


@router.get("/user/session", response_model=SessionTokens)
async def get_user_session(
    session_cache: Annotated[Any, Depends(get_session_cache)],
    user_id: str = Query(..., description="Subject identifier of the user."),
) -> SessionTokens:
    """Return the cached token pair for a user."""
    record = await session_cache.get(user_id)
    if record is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Session not found.")
    return SessionTokens.from_record(record)


@router.post("/refresh-token", response_model=SessionTokens)
async def refresh_user_token(
    refresher: Annotated[Any, Depends(get_token_refresher)],
    user_id: str = Query(..., description="Subject identifier of the user."),
) -> SessionTokens:
    """Exchange the stored refresh token for a new access token."""
    result = await refresher.refresh(user_id)
    if not result.ok:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail={"error": "Failed to refresh token", "reason": result.failure.value},
        )
    return SessionTokens.from_record(result.record)


@router.post("/logout", status_code=HTTPStatus.NO_CONTENT)
async def logout(
    request: Request,
    session_cache: Annotated[Any, Depends(get_session_cache)],
    oauth_client: Annotated[Any, Depends(get_identity_provider_client)],
    settings: Annotated[Any, Depends(get_app_settings)],
    user_id: str = Query(..., description="Subject identifier of the user."),
    return_to: str | None = Query(
        default=None,
        description="Where the provider should send the user after logging out.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the provider's logout page.",
    ),
) -> Response:
    """Drop the cached session and end the provider's single sign-on session.

    Without a configured provider logout URL only the local session is removed.
    """
    await session_cache.delete(user_id)

    target = return_to or settings.frontend_base_url
    logout_url = oauth_client.build_logout_url(str(target) if target else None)
    if logout_url is None:
        return Response(status_code=HTTPStatus.NO_CONTENT)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=logout_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content={"status": "logged_out", "logout_url": logout_url})
