"""
Supabase access token verification for FastAPI.

Supabase signs access tokens with HS256 using the project's JWT secret.
Token structure (relevant claims):
{
  "sub": "<auth user id>",
  "email": "user@example.com",
  "aud": "authenticated",
  "role": "authenticated",
  "exp": 1234567890
}
The application role (admin / restaurant / driver) lives on the users row,
not in the token.
"""
import uuid
from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from swiftlink.core.config import settings
from swiftlink.db.base import get_db
from swiftlink.models import User

bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a Supabase access token.

    Args:
        token: Raw bearer token

    Returns:
        Decoded claims
    """
    if not settings.supabase_jwt_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Supabase JWT secret not configured",
        )

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the current user profile from a Supabase access token.

    - Expects Authorization: Bearer <jwt> header
    - Verifies and decodes the token
    - Loads the users row whose id is the token subject
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
        )

    if credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication scheme",
        )

    claims = verify_access_token(credentials.credentials)

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject",
        ) from exc

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found",
        )

    return user
