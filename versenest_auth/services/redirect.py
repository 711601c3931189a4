"""Landing routes after authentication."""
from __future__ import annotations

from typing import Any

from versenest_auth.models.domain import Role

HOME_ROUTE = "/"
ROLE_ROUTES = {
    Role.WRITER: "/writer/home",
    Role.READER: "/reader/home",
}


# PUBLIC_INTERFACE
def resolve(role: Any) -> str:
    """Return the landing route for ``role``; unknown roles land on ``/``."""
    return ROLE_ROUTES.get(Role.coerce(role), HOME_ROUTE)
