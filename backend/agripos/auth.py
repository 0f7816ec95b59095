# Overview: Actor context and the authentication port used by API routes.

"""
Authentication is owned by an upstream gateway. This module only turns the
identity it forwards into an ActorContext that routes pass explicitly to
every service call. Services never look up the current user on their own.

Default provider: HeaderAuthProvider, reading
- X-User-Id (required, integer)
- X-Branch-Id (required, integer)
- X-User-Email (optional)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, jsonify, request


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, and at which branch."""
    user_id: int
    branch_id: int
    email: str | None = None

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "branch_id": self.branch_id, "email": self.email}


class AuthProvider:
    """Port: resolve the current actor from a request, or None."""

    def current_actor(self, req) -> ActorContext | None:
        raise NotImplementedError


class HeaderAuthProvider(AuthProvider):
    USER_HEADER = "X-User-Id"
    BRANCH_HEADER = "X-Branch-Id"
    EMAIL_HEADER = "X-User-Email"

    def current_actor(self, req) -> ActorContext | None:
        user_id = req.headers.get(self.USER_HEADER)
        branch_id = req.headers.get(self.BRANCH_HEADER)
        if not user_id or not branch_id:
            return None
        try:
            return ActorContext(
                user_id=int(user_id),
                branch_id=int(branch_id),
                email=req.headers.get(self.EMAIL_HEADER) or None,
            )
        except ValueError:
            return None


def get_auth_provider() -> AuthProvider:
    provider = current_app.extensions.get("agripos.auth_provider")
    if provider is None:
        provider = HeaderAuthProvider()
        current_app.extensions["agripos.auth_provider"] = provider
    return provider


def require_actor(f):
    """
    Require an authenticated actor.

    Sets g.actor to the ActorContext. Returns 401 when the provider cannot
    resolve one.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = get_auth_provider().current_actor(request)
        if actor is None:
            return jsonify({"error": "Authentication required"}), 401
        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function
