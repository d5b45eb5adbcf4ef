import logging
import time
from typing import Optional

import httpx
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import (
    BadSignatureError,
    DecodeError,
    ExpiredTokenError,
    InvalidClaimError,
    JoseError,
)

from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.core.config import settings

logger = logging.getLogger(__name__)

JWKS_CACHE_TTL = 3600  # 1 hour in seconds


class IdentityService:
    """
    Reads session tokens issued by the identity provider.

    Tokens are verified with the shared AUTH_SECRET (HS256), or against the
    provider's JWKS when AUTH_JWKS_URL is configured. This service never
    issues tokens.
    """

    def __init__(self, secret: Optional[str] = None, jwks_url: Optional[str] = None):
        self.secret = secret if secret is not None else settings.AUTH_SECRET
        self.jwks_url = jwks_url if jwks_url is not None else settings.AUTH_JWKS_URL
        # Cache JWKS to avoid repeated fetches (cache for 1 hour)
        self._jwks_cache: Optional[dict] = None
        self._jwks_cache_expiry: Optional[float] = None

    async def _get_jwks(self) -> dict:
        current_time = time.time()
        if not self._jwks_cache or (
            self._jwks_cache_expiry and current_time > self._jwks_cache_expiry
        ):
            async with httpx.AsyncClient() as client:
                response = await client.get(self.jwks_url, timeout=10.0)
                response.raise_for_status()
                self._jwks_cache = response.json()
                self._jwks_cache_expiry = current_time + JWKS_CACHE_TTL
            logger.debug(
                f"JWKS fetched and cached. Keys: {len(self._jwks_cache.get('keys', []))}"
            )
        return self._jwks_cache

    async def _decode_and_validate_token(self, token: str) -> dict:
        """
        Decode and validate a session token.

        Returns:
            Dict of token claims (decoded and validated)

        Raises:
            JoseError: If the token is malformed, expired or badly signed
            httpx.HTTPError: If the JWKS document cannot be fetched
        """
        if self.jwks_url:
            key = JsonWebKey.import_key_set(await self._get_jwks())
            decoder = JsonWebToken(["RS256", "ES256"])
        else:
            key = self.secret
            decoder = JsonWebToken(["HS256"])

        claims = decoder.decode(
            token,
            key,
            claims_options={"exp": {"essential": True}},
        )
        claims.validate()
        return claims

    async def verify_session(self, token: str) -> dict:
        """
        Verify a session token with full signature verification.

        Returns:
            Dict of verified claims

        Raises:
            ValueError: If token is invalid, expired, or signature verification fails
        """
        try:
            return dict(await self._decode_and_validate_token(token))
        except ExpiredTokenError:
            logger.warning("Session token has expired")
            raise ValueError("Token has expired")
        except BadSignatureError:
            logger.warning("Invalid session token signature")
            raise ValueError("Invalid token signature - token may have been tampered with")
        except DecodeError as e:
            logger.warning(f"Failed to decode session token: {e}")
            raise ValueError(f"Invalid token format: {e}")
        except InvalidClaimError as e:
            logger.warning(f"Invalid session token claim: {e}")
            raise ValueError(f"Invalid token claim: {e}")
        except (JoseError, httpx.HTTPError) as e:
            logger.error(f"Error verifying session: {type(e).__name__}: {e}", exc_info=True)
            raise ValueError(f"Token verification failed: {str(e)}")

    async def decode_session_token(self, token: Optional[str]) -> Optional[SessionIdentity]:
        """
        Resolve a session token into the identity it carries.

        Missing, invalid and expired tokens all mean an anonymous visitor, so
        this returns None instead of raising.
        """
        if not token:
            return None
        try:
            claims = await self.verify_session(token)
            return SessionIdentity.from_claims(claims)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too (missing id claim)
            logger.debug(f"Treating request as anonymous: {e}")
            return None
