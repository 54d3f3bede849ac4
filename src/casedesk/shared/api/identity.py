"""
Request Identity
================

Caller identity supplied by the upstream API gateway.

The gateway verifies credentials and forwards X-User-* headers after
stripping any client-provided copies. Services trust these headers
without additional validation.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from casedesk.config import UserRole, VALID_ROLES
from casedesk.core import ForbiddenException, UnauthorizedException


@dataclass(frozen=True)
class Identity:
    """Verified caller identity."""
    user_id: str
    role: str = UserRole.USER
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_agent(self) -> bool:
        return self.role == UserRole.AGENT

    def require_agent(self) -> None:
        """Raise unless the caller is a support agent."""
        if not self.is_agent:
            raise ForbiddenException("Agent access required")


def get_identity(request: Request) -> Identity:
    """
    Extract the caller identity from gateway headers.

    Raises:
        UnauthorizedException: If X-User-ID is missing or the role is unknown
    """
    user_id = request.headers.get("X-User-ID")
    if not user_id:
        raise UnauthorizedException("X-User-ID header required (added by the API gateway)")

    role = request.headers.get("X-User-Role", UserRole.USER).strip().lower()
    if role not in VALID_ROLES:
        raise UnauthorizedException(f"Unknown role '{role}'")

    return Identity(
        user_id=user_id,
        role=role,
        name=request.headers.get("X-User-Name"),
        email=request.headers.get("X-User-Email"),
    )


def get_agent_identity(request: Request) -> Identity:
    """Identity dependency for agent-only routes."""
    identity = get_identity(request)
    identity.require_agent()
    return identity
