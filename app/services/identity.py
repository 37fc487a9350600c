"""Actor identity from Supabase-issued JWTs.

The game never authenticates anyone itself: it only checks the signature of
the token the identity provider issued and reads the stable `sub` claim.
"""

import logging
from dataclasses import dataclass
from time import time

import httpx
import jwt

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Result of token verification."""

    success: bool
    payload: dict | None = None
    error: str | None = None
    expired: bool = False

    @property
    def uid(self) -> str | None:
        return self.payload.get("sub") if self.payload else None


class AsyncJWKSClient:
    """Async JWKS client using httpx with TTL-based caching."""

    def __init__(self, jwks_url: str, cache_ttl: int = 300):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self._jwks_cache: dict | None = None
        self._cache_time: float = 0
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def _get_jwks(self) -> dict:
        """Fetch JWKS from the URL with caching."""
        if self._jwks_cache and time() - self._cache_time < self.cache_ttl:
            return self._jwks_cache

        client = await self._get_http_client()
        response = await client.get(self.jwks_url)
        response.raise_for_status()
        self._jwks_cache = response.json()
        self._cache_time = time()
        logger.debug("JWKS cache refreshed from %s", self.jwks_url)
        return self._jwks_cache

    async def get_signing_key(self, token: str) -> object:
        """Get the signing key for a JWT token.

        Raises:
            ValueError: If the key is not found in JWKS or key type is unsupported.
        """
        jwks = await self._get_jwks()
        kid = jwt.get_unverified_header(token).get("kid")

        for key_data in jwks.get("keys", []):
            if key_data.get("kid") != kid:
                continue
            kty = key_data.get("kty")
            if kty == "RSA":
                return jwt.algorithms.RSAAlgorithm.from_jwk(key_data)
            if kty == "EC":
                return jwt.algorithms.ECAlgorithm.from_jwk(key_data)
            if kty == "OKP":
                return jwt.algorithms.OKPAlgorithm.from_jwk(key_data)
            raise ValueError(f"Unsupported key type: {kty}")

        raise ValueError(f"Key {kid} not found in JWKS")

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None


class TokenVerifier:
    """Validates bearer tokens for both HTTP requests and WebSocket connects.

    Returns AuthResult instead of raising so each transport can report the
    failure its own way.
    """

    ALLOWED_ALGORITHMS = ["RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "EdDSA"]

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._jwks_client: AsyncJWKSClient | None = None

    def _get_jwks_client(self) -> AsyncJWKSClient:
        if self._jwks_client is None:
            logger.debug("Initializing JWKS client with URL: %s", self._settings.supabase_jwks_url)
            self._jwks_client = AsyncJWKSClient(self._settings.supabase_jwks_url)
        return self._jwks_client

    async def validate_token(self, token: str | None) -> AuthResult:
        """Verify a JWT and return its claims.

        Returns:
            AuthResult with success=True and payload on a valid token carrying
            a subject, or success=False with an error message.
        """
        if not token:
            return AuthResult(success=False, error="Missing token")

        try:
            algorithm = jwt.get_unverified_header(token).get("alg")
            if algorithm not in self.ALLOWED_ALGORITHMS:
                logger.warning("Auth failed: disallowed algorithm %s", algorithm)
                return AuthResult(success=False, error=f"Algorithm {algorithm} not allowed")

            signing_key = await self._get_jwks_client().get_signing_key(token)
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=[algorithm],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Auth failed: token expired")
            return AuthResult(success=False, error="Token has expired", expired=True)
        except jwt.InvalidTokenError as e:
            logger.warning("Auth failed: invalid token - %s", e)
            return AuthResult(success=False, error=f"Invalid token: {e}")
        except (ValueError, httpx.HTTPError) as e:
            logger.error("Auth failed: signing key unavailable - %s", e)
            return AuthResult(success=False, error="Authentication failed")

        if not payload.get("sub"):
            logger.warning("Auth failed: token has no subject")
            return AuthResult(success=False, error="Token has no subject")

        logger.debug("JWT validated successfully for user: %s", payload.get("sub"))
        return AuthResult(success=True, payload=payload)

    async def close(self) -> None:
        if self._jwks_client:
            await self._jwks_client.close()
            self._jwks_client = None


_token_verifier: TokenVerifier | None = None


def get_token_verifier() -> TokenVerifier:
    """Get the global TokenVerifier instance."""
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = TokenVerifier()
    return _token_verifier


async def close_token_verifier() -> None:
    """Close the global TokenVerifier instance."""
    global _token_verifier
    if _token_verifier:
        await _token_verifier.close()
        _token_verifier = None
