"""
verify.py
---------
Purpose:
    Clerk session token verification using the Clerk JWKS (RS256).

Notes:
    - One ClerkTokenVerifier is built at startup and kept on app.state.
    - Signing keys are fetched from the JWKS endpoint and cached by PyJWKClient.
    - `auth_dependency` resolves the bearer token to the Clerk user id (`sub`).
"""

import asyncio

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.infrastructure.observability.logging import bind_request_context, get_logger

logger = get_logger(__name__)

_security = HTTPBearer(auto_error=False)


class ClerkTokenVerifier:
    def __init__(
        self,
        jwks_url: str,
        secret_key: str,
        *,
        authorized_parties: list[str] | None = None,
        leeway_seconds: int = 5,
    ):
        self._jwk_client = PyJWKClient(
            jwks_url,
            headers={"Authorization": f"Bearer {secret_key}"},
        )
        self.authorized_parties = authorized_parties or []
        self.leeway_seconds = leeway_seconds

    def verify(self, token: str) -> str:
        """Return the Clerk user id for a valid session token."""
        signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            leeway=self.leeway_seconds,
            options={"verify_exp": True, "verify_nbf": True, "verify_aud": False},
        )

        azp = claims.get("azp")
        if self.authorized_parties and azp and azp not in self.authorized_parties:
            raise jwt.InvalidTokenError(f"Unauthorized party: {azp}")

        subject = claims.get("sub")
        if not subject:
            raise jwt.InvalidTokenError("Token has no subject")
        return subject


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def auth_dependency(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> str:
    """Resolve `Authorization: Bearer <token>` to the caller's Clerk user id."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Invalid or missing authentication token")

    verifier: ClerkTokenVerifier = request.app.state.token_verifier
    try:
        # JWKS fetch on a key miss is blocking I/O
        external_id = await asyncio.to_thread(verifier.verify, credentials.credentials)
    except (jwt.PyJWTError, jwt.PyJWKClientError) as e:
        logger.warning("Token verification failed", error=str(e))
        raise _unauthorized("Invalid or missing authentication token") from e

    request.state.external_id = external_id
    bind_request_context(external_id=external_id)
    return external_id
