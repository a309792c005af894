"""Google sign-in: exchange an OAuth authorization code for a verified profile."""
import logging
from typing import Protocol

import httpx
from pydantic import BaseModel

from tramoo.core.config import settings
from tramoo.core.exceptions import ExternalServiceError, Unauthorized

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


class GoogleProfile(BaseModel):
    email: str
    name: str | None = None
    picture: str | None = None


class IdentityProvider(Protocol):
    async def exchange_code(self, code: str) -> GoogleProfile:
        ...


class GoogleIdentityProvider:
    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI or "postmessage"
        self._transport = transport

    async def exchange_code(self, code: str) -> GoogleProfile:
        if not (self.client_id and self.client_secret):
            raise ExternalServiceError("Google sign-in is not configured", service="google")
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                token_resp = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                if token_resp.status_code != 200:
                    logger.info("Google code exchange rejected: %s", token_resp.status_code)
                    raise Unauthorized("Google authentication failed", code="GOOGLE_AUTH_FAILED")
                id_token = token_resp.json().get("id_token")
                if not id_token:
                    raise Unauthorized("Google authentication failed", code="GOOGLE_AUTH_FAILED")
                info_resp = await client.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as e:
            logger.warning("Google sign-in request failed: %s", e)
            raise ExternalServiceError("Google authentication failed", service="google")

        claims = info_resp.json() if info_resp.status_code == 200 else {}
        if (
            claims.get("aud") != self.client_id
            or claims.get("iss") not in GOOGLE_ISSUERS
            or str(claims.get("email_verified")).lower() != "true"
            or not claims.get("email")
        ):
            raise Unauthorized("Google authentication failed", code="GOOGLE_AUTH_FAILED")
        return GoogleProfile(email=claims["email"], name=claims.get("name"), picture=claims.get("picture"))


def get_identity_provider() -> IdentityProvider:
    return GoogleIdentityProvider()
