import json
import logging
import time
from typing import Any, Dict
import urllib.request

from fastapi import Depends, HTTPException, status, Request
from jose import jwt
from jose.exceptions import JWTError
from sqlalchemy.orm import Session

# === Cognito Configuration ===
# Values come from environment variables (see .env).
import os
from dotenv import load_dotenv

from crud.users import sync_user
from database import get_db
from models.users import UserRole
from schemas.actor import ActorContext
from utils.errors import PermissionDenied
from utils.tenancy import get_company_id

load_dotenv()

logger = logging.getLogger("auth")

COGNITO_REGION = os.getenv("COGNITO_REGION", "eu-north-1")
COGNITO_USER_POOL_ID = os.getenv("COGNITO_USER_POOL_ID")
COGNITO_APP_CLIENT_ID = os.getenv("COGNITO_APP_CLIENT_ID")

COGNITO_ISSUER = f"https://cognito-idp.{COGNITO_REGION}.amazonaws.com/{COGNITO_USER_POOL_ID}"
COGNITO_JWKS_URL = f"{COGNITO_ISSUER}/.well-known/jwks.json"

# Users in this Cognito group are admins; everyone else is a store manager
ADMIN_GROUP = os.getenv("COGNITO_ADMIN_GROUP", "admin")

# Cache for Cognito's public keys (JWKS)
jwks_cache = {
    "keys": [],
    "expiration_time": 0,
}

def get_jwks():
    """
    Retrieves the JSON Web Key Set (JWKS) from Cognito.
    Keys are cached for 24 hours.
    """
    global jwks_cache
    if jwks_cache["keys"] and jwks_cache["expiration_time"] > time.time():
        return jwks_cache["keys"]

    logger.info(f"Fetching JWKS from: {COGNITO_JWKS_URL}")
    try:
        with urllib.request.urlopen(COGNITO_JWKS_URL) as response:
            jwks_data = json.loads(response.read().decode("utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Error fetching JWKS: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not fetch Cognito public keys for token validation."
        ) from e

    jwks_cache = {
        "keys": jwks_data["keys"],
        "expiration_time": time.time() + (60 * 60 * 24)
    }
    return jwks_cache["keys"]


def get_current_user(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency to validate the Cognito JWT from the Authorization header.
    Returns the verified token claims.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing",
        )

    # The token is expected to be in the format "Bearer <token>"
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    token = parts[1]
    jwks = get_jwks()

    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token header"
        )

    rsa_key = {}
    for key in jwks:
        if key["kid"] == unverified_header.get("kid"):
            rsa_key = {
                "kty": key["kty"],
                "kid": key["kid"],
                "use": key["use"],
                "n": key["n"],
                "e": key["e"],
            }
            break

    if not rsa_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unable to find a matching public key to verify the token",
        )

    try:
        return jwt.decode(
            token,
            rsa_key,
            algorithms=["RS256"],
            audience=COGNITO_APP_CLIENT_ID,
            issuer=COGNITO_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.JWTClaimsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token claims: {e}"
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {e}"
        )


def actor_from_claims(claims: Dict[str, Any], company_id: str) -> ActorContext:
    """Build the acting user from verified token claims."""
    uid = claims.get("sub")
    if not uid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no subject")
    groups = claims.get("cognito:groups") or []
    role = UserRole.ADMIN if ADMIN_GROUP in groups else UserRole.STORE_MANAGER
    display_name = (
        claims.get("name")
        or claims.get("email")
        or claims.get("cognito:username")
        or claims.get("username")
        or uid
    )
    return ActorContext(uid=uid, display_name=display_name, role=role, company_id=company_id)


def get_actor(
    claims: Dict[str, Any] = Depends(get_current_user),
    company_id: str = Depends(get_company_id),
    db: Session = Depends(get_db),
) -> ActorContext:
    actor = actor_from_claims(claims, company_id)
    sync_user(db, actor, email=claims.get("email"))
    return actor


def require_admin(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    if not actor.is_privileged:
        raise PermissionDenied("This action requires an admin")
    return actor
