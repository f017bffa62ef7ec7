"""
OpenID-Connect provider utilities.

These helpers manage the user authentication flow and token refresh lifecycle.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from fastapi import HTTPException, status

from authsession.core.config import IdentityProviderSettings


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OAuthTransportError(Exception):
    """Raised when the identity provider cannot be reached."""


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by the token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_response(cls, payload: Any) -> "TokenGrant":
        if not isinstance(payload, dict):
            raise OAuthTokenExchangeError("Token response was not a JSON object.")
        access_token = payload.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise OAuthTokenExchangeError("Token response did not include an access_token.")
        refresh_token = payload.get("refresh_token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise OAuthTokenExchangeError("Token response carried a malformed refresh_token.")

        expires_in = payload.get("expires_in")
        if expires_in is not None:
            try:
                expires_in = int(expires_in)
            except (TypeError, ValueError) as exc:
                raise OAuthTokenExchangeError(
                    f"Token response carried a malformed expires_in: {expires_in!r}"
                ) from exc
        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            id_token=payload.get("id_token"),
            expires_in=expires_in,
        )


class IdentityProviderClient:
    """Build authorization URLs and call the provider's token and userinfo endpoints."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        )

    def build_authorization_url(self, state: str) -> str:
        """Construct the provider's login URL."""
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "scope": self._settings.scopes,
            "state": state,
        }
        query = urlencode(params)
        return f"{self._settings.authorize_url}?{query}"

    def build_logout_url(self, return_to: Optional[str] = None) -> Optional[str]:
        """Construct the provider's logout URL, or None when none is configured."""
        if self._settings.logout_url is None:
            return None
        params = {"client_id": self._settings.client_id}
        if return_to:
            params["returnTo"] = return_to
        return f"{self._settings.logout_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens."""
        payload = {
            "code": code,
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "grant_type": "authorization_code",
        }
        return await self._request_token(payload)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token.

        The returned grant carries a rotated refresh token only when the
        provider issued one.
        """
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
            "refresh_token": refresh_token,
        }
        return await self._request_token(payload)

    async def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        """Return the claims published by the userinfo endpoint."""
        try:
            async with self._http_client() as client:
                response = await client.get(
                    str(self._settings.userinfo_url),
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise OAuthTransportError(str(exc)) from exc

        if not response.is_success:
            raise OAuthTokenExchangeError(
                "Userinfo request was rejected.", status_code=response.status_code
            )
        try:
            claims = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError(
                "Userinfo endpoint returned a non-JSON body.", status_code=response.status_code
            ) from exc
        if not isinstance(claims, dict) or not claims.get("sub"):
            raise OAuthTokenExchangeError("Userinfo response did not include a subject.")
        return claims

    async def _request_token(self, payload: Dict[str, str]) -> TokenGrant:
        if self._settings.client_secret:
            payload["client_secret"] = self._settings.client_secret

        try:
            async with self._http_client() as client:
                response = await client.post(str(self._settings.token_url), data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTransportError(str(exc)) from exc

        if not response.is_success:
            raise OAuthTokenExchangeError(response.text, status_code=response.status_code)

        try:
            token_payload = response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError(
                "Token endpoint returned a non-JSON body.", status_code=response.status_code
            ) from exc
        return TokenGrant.from_response(token_payload)


__all__ = [
    "IdentityProviderClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "OAuthTransportError",
    "TokenGrant",
]
