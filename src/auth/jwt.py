"""Bearer token dependencies scoping requests to a tenant."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status

from src.core.config import settings


def decode_bearer(authorization: str = Header(...)) -> Dict[str, Any]:
    """Verify the bearer token signature and return its claims."""

    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )

    token = authorization.split(" ", 1)[1].strip()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc


def require_auth(payload: Dict[str, Any] = Depends(decode_bearer)) -> Dict[str, Any]:
    """Require a ``tenant_id`` claim and return the tenant and decoded claims."""

    if "tenant_id" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Tenant missing in token",
        )

    try:
        tenant_uuid = UUID(str(payload["tenant_id"]))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid tenant identifier",
        ) from exc

    return {"tenant_id": tenant_uuid, "claims": payload}


def require_admin(payload: Dict[str, Any] = Depends(decode_bearer)) -> Dict[str, Any]:
    """Allow only tokens whose ``role`` claim is ``admin``.

    Admin tokens act across tenants, so no ``tenant_id`` claim is needed.
    """

    if payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return {"claims": payload}
