"""API key authentication and tenant context extraction.

Service callers present an API key in the X-Eval-API-Key header; the key
registry (JSON object in SUPPLIER_EVAL_API_KEYS_JSON) maps each key to the
tenant and actor it acts for. Fails closed: a missing registry, missing key
or unknown key is a 401, and errors never reveal whether a tenant exists.

Registry format::

    {"<api key>": {"tenant_id": "t-1", "actor_id": "svc-procurement", "name": "Procurement"}}
"""

import hmac
import json
import logging
import os
from typing import Annotated

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError

from supplier_eval.api.errors import EvalHttpError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Eval-API-Key"
SUPPLIER_EVAL_API_KEYS_ENV = "SUPPLIER_EVAL_API_KEYS_JSON"


class TenantContext(BaseModel):
    """Authenticated caller: the tenant scope and the actor id recorded on writes."""

    tenant_id: str
    actor_id: str
    name: str = ""


class ApiKeyRecord(BaseModel):
    tenant_id: str
    actor_id: str
    name: str = ""


def _load_api_key_registry() -> dict[str, ApiKeyRecord]:
    """Load the API key registry; malformed entries are skipped, malformed JSON is empty."""
    raw = os.environ.get(SUPPLIER_EVAL_API_KEYS_ENV)
    if not raw:
        return {}

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(
            "Failed to parse %s; treating as empty registry", SUPPLIER_EVAL_API_KEYS_ENV
        )
        return {}

    if not isinstance(parsed, dict):
        logger.warning(
            "%s is not an object; treating as empty registry", SUPPLIER_EVAL_API_KEYS_ENV
        )
        return {}

    registry: dict[str, ApiKeyRecord] = {}
    for key, value in parsed.items():
        if not isinstance(value, dict):
            continue
        try:
            registry[key] = ApiKeyRecord.model_validate(value)
        except ValidationError:
            logger.warning("Skipping malformed API key registry entry")
    return registry


def _constant_time_lookup(
    provided_key: str, registry: dict[str, ApiKeyRecord]
) -> ApiKeyRecord | None:
    """Compare against every registered key with hmac.compare_digest."""
    matched: ApiKeyRecord | None = None
    provided = provided_key.encode("utf-8")
    for registered_key, record in registry.items():
        if hmac.compare_digest(provided, registered_key.encode("utf-8")):
            matched = record
    return matched


def authenticate_request(request: Request) -> TenantContext:
    """Resolve the caller's tenant context from the API key header.

    Raises:
        EvalHttpError: 401 on a missing or unknown key.
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise EvalHttpError(status_code=401, code="UNAUTHORIZED", message="Missing API key")

    record = _constant_time_lookup(api_key, _load_api_key_registry())
    if record is None:
        raise EvalHttpError(status_code=401, code="UNAUTHORIZED", message="Invalid API key")

    return TenantContext(tenant_id=record.tenant_id, actor_id=record.actor_id, name=record.name)


async def require_tenant_context(request: Request) -> TenantContext:
    """FastAPI dependency enforcing API key auth; stores the context on request.state."""
    tenant_ctx = authenticate_request(request)
    request.state.tenant_context = tenant_ctx
    return tenant_ctx


RequireTenantContext = Annotated[TenantContext, Depends(require_tenant_context)]
