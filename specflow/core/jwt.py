"""JWT verification for Supabase access tokens.

Tokens are HS256-signed with the project's JWT secret; issuer and audience
are checked against the configured Supabase project.
"""

import jwt

from specflow.core.config import settings
from specflow.schemas.auth import JWTClaims
from specflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "exp", "iat", "iss"]


class JWTVerifier:
    """Decode and validate bearer tokens."""

    def __init__(self, supabase_url: str, jwt_secret: str = "", audience: str = "authenticated"):
        """Initialize JWT verifier.

        Args:
            supabase_url: Supabase project URL for issuer validation
            jwt_secret: Supabase JWT secret for HS256 verification
            audience: Expected ``aud`` claim
        """
        self.expected_issuer = f"{supabase_url.rstrip('/')}/auth/v1"
        self.jwt_secret = jwt_secret
        self.audience = audience

    def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode a token.

        Args:
            token: JWT access token from the Authorization header

        Returns:
            Decoded and validated claims

        Raises:
            jwt.InvalidTokenError: If the token is invalid, expired or from another issuer
        """
        if not self.jwt_secret:
            raise jwt.InvalidTokenError("SUPABASE_JWT_SECRET is not configured")

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
                issuer=self.expected_issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            LOGGER.warning(f"Invalid issuer: {e}")
            raise jwt.InvalidTokenError("Invalid token issuer") from e

        claims = JWTClaims(**payload)
        LOGGER.debug(f"Successfully verified token for user: {claims.sub}")
        return claims


jwt_verifier = JWTVerifier(
    supabase_url=settings.supabase_url,
    jwt_secret=settings.supabase_jwt_secret,
    audience=settings.supabase.jwt_audience,
)
