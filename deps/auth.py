import os
from typing import Annotated

from fastapi import Header, HTTPException

from workflow import Actor, Role


def require_admin(
    x_admin_token: Annotated[str | None, Header(alias="x-admin-token")] = None,
) -> None:
    """
    Strict admin-only guard. Requires the X-Admin-Token header to match ADMIN_TOKEN.
    """
    admin_token = os.getenv("ADMIN_TOKEN", "")
    if not admin_token:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured on server.")
    if x_admin_token != admin_token:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def get_actor(
    x_actor_id: Annotated[str | None, Header(alias="x-actor-id")] = None,
    x_actor_role: Annotated[str | None, Header(alias="x-actor-role")] = None,
) -> Actor:
    """
    Who is acting, as asserted by the upstream auth layer. Identity is not
    verified here; the workflow only checks the role against the transition.
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="x-actor-id and x-actor-role are required.")
    try:
        role = Role(x_actor_role.lower())
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role {x_actor_role!r}.")
    if role is Role.SYSTEM:
        # system moves are made by the service itself, never by a caller
        raise HTTPException(status_code=403, detail="The system role cannot be asserted.")
    return Actor(id=x_actor_id, role=role)
