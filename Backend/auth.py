"""
JWT Authentication Module for WebGuard AI

Security Features:
- Validates Supabase JWT tokens with mandatory secret
- Returns 401 for invalid/expired tokens
- Audit logging of every authentication attempt
- Fail-closed security (rejects if misconfigured)

Usage:
    from auth import get_current_user, AuthenticatedUser

    @app.get("/scans")
    async def list_my_scans(user: AuthenticatedUser = Depends(get_current_user)):
        # user.id is the Supabase user id from the token's `sub` claim
"""

from fastapi import Security, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
import jwt
import os
import logging
from typing import Optional
from security import audit_logger

# Configure logger
logger = logging.getLogger(__name__)

# ============================================================================
# CRITICAL SECURITY: JWT Secret Validation
# ============================================================================

SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")

if not SUPABASE_JWT_SECRET:
    raise ValueError(
        "❌ CRITICAL SECURITY ERROR: SUPABASE_JWT_SECRET is not set!\n"
        "This would allow anyone to forge authentication tokens.\n"
        "Please set SUPABASE_JWT_SECRET in your environment.\n"
        "Example: SUPABASE_JWT_SECRET=your-secret-here-minimum-32-chars-long"
    )

if len(SUPABASE_JWT_SECRET) < 32:
    raise ValueError(
        f"❌ CRITICAL SECURITY ERROR: SUPABASE_JWT_SECRET is too short!\n"
        f"Current length: {len(SUPABASE_JWT_SECRET)} characters\n"
        f"Minimum required: 32 characters"
    )

logger.info("✅ JWT secret validated (length: %d characters)", len(SUPABASE_JWT_SECRET))


class AuthenticatedUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "authenticated"


security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    request: Request = None
) -> AuthenticatedUser:
    """
    Validates Supabase JWT token and returns the authenticated user.

    Users live in the auth service, so the token claims are the source of
    truth; no database lookup is made.

    Raises:
        HTTPException 401: Invalid or expired token
    """
    token = credentials.credentials
    ip_address = request.client.host if request and request.client else None

    try:
        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience="authenticated"  # Supabase-specific claim
        )
    except jwt.ExpiredSignatureError:
        audit_logger.log_auth_failure(
            reason="JWT token expired",
            ip_address=ip_address
        )
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        audit_logger.log_auth_failure(
            reason=f"Invalid JWT: {type(e).__name__}",
            ip_address=ip_address
        )
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        audit_logger.log_auth_failure(
            reason="Missing 'sub' claim in JWT",
            ip_address=ip_address
        )
        raise HTTPException(status_code=401, detail="Invalid token structure")

    audit_logger.log_auth_success(user_id=user_id, ip_address=ip_address)

    return AuthenticatedUser(
        id=user_id,
        email=payload.get("email"),
        role=payload.get("role", "authenticated")
    )
