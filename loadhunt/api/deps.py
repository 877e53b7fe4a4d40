"""
Shared route dependencies: tenant and actor come from headers.

X-Tenant-Id is required on every tenant-scoped route; X-Actor-Id / X-Actor-Name identify the
operator for the action history (both optional).
"""
import logging
from typing import NoReturn

from fastapi import Header

from loadhunt.core.errors import TenantRequiredError, engine_error_to_http
from loadhunt.services.lifecycle import Actor

logger = logging.getLogger(__name__)


def tenant_id(x_tenant_id: str | None = Header(None, alias="X-Tenant-Id")) -> str:
    tid = (x_tenant_id or "").strip()
    if not tid:
        raise engine_error_to_http(TenantRequiredError())
    return tid


def actor(
    x_actor_id: str | None = Header(None, alias="X-Actor-Id"),
    x_actor_name: str | None = Header(None, alias="X-Actor-Name"),
) -> Actor:
    return Actor(id=(x_actor_id or "").strip() or None, name=(x_actor_name or "").strip() or None)


def raise_engine_error(exc: Exception) -> NoReturn:
    """Known domain errors map to 4xx quietly; anything else is logged and becomes a 500."""
    http_exc = engine_error_to_http(exc)
    if http_exc.status_code >= 500:
        logger.exception("Unhandled error: %s", exc)
    raise http_exc from exc
