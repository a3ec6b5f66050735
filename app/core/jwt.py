"""JWT verification utilities for FreightFlow access tokens.

Access tokens are issued by the identity service and signed with a shared
secret. This module only verifies them; it never issues tokens.
"""

from typing import List

import jwt

from app.core.config import settings
from app.schemas.auth import JWTClaims
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class JWTVerifier:
    """JWT verifier for access tokens.

    This class handles:
    - signature verification against the configured secret
    - expiry, issuer and audience validation
    - conversion of the payload into typed claims
    """

    def __init__(self, secret: str, algorithm: str, issuer: str, audience: str):
        self.secret = secret
        self.algorithms: List[str] = [algorithm]
        self.issuer = issuer
        self.audience = audience
        LOGGER.info(f"JWT verifier initialized for issuer: {self.issuer}")

    async def verify_token(self, token: str) -> JWTClaims:
        """Verify and decode an access token.

        Args:
            token: JWT access token from the Authorization header or cookie

        Returns:
            Decoded and validated JWT claims

        Raises:
            jwt.InvalidTokenError: If token is invalid, expired or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["sub", "tenant_id", "exp", "iat", "iss"]},
            )
            claims = JWTClaims(**payload)
            LOGGER.debug(f"Successfully verified token for user: {claims.sub}")
            return claims

        except jwt.ExpiredSignatureError as e:
            LOGGER.warning(f"Token expired: {e}")
            raise jwt.InvalidTokenError("Token has expired") from e
        except jwt.InvalidIssuerError as e:
            LOGGER.warning(f"Invalid issuer: {e}")
            raise jwt.InvalidTokenError("Invalid token issuer") from e
        except jwt.InvalidSignatureError as e:
            LOGGER.warning(f"Invalid signature: {e}")
            raise jwt.InvalidTokenError("Invalid token signature") from e
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token: {e}")
            raise
        except ValueError as e:
            # Pydantic rejects claims of the wrong shape (e.g. a non-UUID tenant)
            LOGGER.warning(f"Malformed token claims: {e}")
            raise jwt.InvalidTokenError("Malformed token claims") from e


jwt_verifier = JWTVerifier(
    secret=settings.auth.jwt_secret,
    algorithm=settings.auth.jwt_algorithm,
    issuer=settings.auth.jwt_issuer,
    audience=settings.auth.jwt_audience,
)
