# core/guard.py

"""
RBAC guard.

Every guarded request goes through the same stages, in this order:

    throttle → identity → company context → mode → role facts → evaluate → audit → outcome

A stage that fails short-circuits with an RBACError; the wrapped handler is
never called and nothing is written to the role store.
"""

import asyncio
import functools
from typing import Callable, List, Optional, Sequence

from fastapi import Request
from fastapi.responses import JSONResponse

from core.audit import AuditLogger, build_audit_logger, get_client_ip, get_user_agent
from core.config import settings
from core.config_validator import get_enforcement_mode
from core.errors import ConfigurationError, RBACError, Unauthenticated, Unauthorized
from core.evaluator import evaluate, evaluate_all, evaluate_any
from core.identity import build_identity_resolver, extract_bearer_token
from core.logging_config import logger
from core.permissions import get_permission
from core.rate_limiter import require_rate_limit
from core.role_store import SupabaseRoleFactReader, load_effective_roles
from core.supabase_client import get_supabase_client
from models.enums import AuditResult, EnforcementMode
from models.rbac import AccessContext, Decision, Principal, RoleGrant


MATCH_SINGLE = "single"
MATCH_ANY = "any"
MATCH_ALL = "all"

RBAC_DISABLED = "RBAC_DISABLED"


class GuardServices:
    """Collaborators the guard needs for one request."""

    def __init__(self, identity, reader, audit: Optional[AuditLogger] = None):
        self.identity = identity
        self.reader = reader
        self.audit = audit or AuditLogger(None, enabled=False)


def build_guard_services() -> GuardServices:
    client = get_supabase_client()
    if client is None:
        raise ConfigurationError("Supabase client not configured")
    return GuardServices(
        identity=build_identity_resolver(client),
        reader=SupabaseRoleFactReader(client),
        audit=build_audit_logger(client),
    )


def validate_permissions(permissions: Sequence[str]) -> List[str]:
    """Catalog check at declaration time, so a typo fails at import."""
    if isinstance(permissions, str):
        permissions = [permissions]
    resolved = [get_permission(p).key for p in permissions]
    if not resolved:
        raise ConfigurationError("A guard needs at least one permission")
    return resolved


# -----------------------------------------------------
# Request context
# -----------------------------------------------------
def resolve_company_context(request: Request) -> Optional[str]:
    """
    The route's company_id path parameter wins; otherwise the caller's
    selected tenant header. Empty values mean no tenant context.
    """
    path_company = (request.path_params or {}).get("company_id")
    header_company = request.headers.get(settings.ACTIVE_COMPANY_HEADER)

    if path_company:
        if header_company and header_company != path_company:
            logger.info(
                f"Ignoring {settings.ACTIVE_COMPANY_HEADER}={header_company} "
                f"for route scoped to company {path_company}"
            )
        return str(path_company)

    if header_company and header_company.strip():
        return header_company.strip()

    return None


async def resolve_principal(request: Request, services: GuardServices) -> Principal:
    token = extract_bearer_token(request.headers.get("authorization"))
    principal = await asyncio.to_thread(services.identity.resolve, token)
    if principal is None:
        raise Unauthenticated()
    return principal


async def effective_grants(
    request: Request,
    services: GuardServices,
    principal: Principal,
    company_id: Optional[str],
) -> List[RoleGrant]:
    """
    Effective grants memoised on request.state only, so several guards on
    one request share a single fan-out and nothing outlives the request.
    """
    memo = getattr(request.state, "rbac_grants", None)
    if memo is None:
        memo = {}
        request.state.rbac_grants = memo

    key = (principal.id, company_id)
    if key not in memo:
        memo[key] = await load_effective_roles(services.reader, principal, company_id)
    return memo[key]


def _decide(grants, permissions: List[str], match: str, company_id: Optional[str]) -> Decision:
    if match == MATCH_ANY:
        return evaluate_any(grants, permissions, company_id)
    if match == MATCH_ALL:
        return evaluate_all(grants, permissions, company_id)
    return evaluate(grants, permissions[0], company_id)


# ============================================================
# AUTHORIZE
# ============================================================
async def authorize(
    request: Request,
    permissions: Sequence[str],
    services: GuardServices,
    match: str = MATCH_SINGLE,
) -> AccessContext:
    required = validate_permissions(permissions)
    label = required[0] if match == MATCH_SINGLE else (" OR " if match == MATCH_ANY else " AND ").join(required)

    # 0. Throttle
    if settings.RBAC_RATE_LIMIT_PER_MINUTE > 0:
        require_rate_limit(request, settings.RBAC_RATE_LIMIT_PER_MINUTE)

    # 1. Identity
    try:
        principal = await resolve_principal(request, services)
    except Unauthenticated:
        logger.warning(f"🔐 RBAC: Unauthenticated request for {label} at {request.url.path}")
        raise

    company_id = resolve_company_context(request)

    mode = get_enforcement_mode()
    if mode == EnforcementMode.disabled:
        return AccessContext(
            principal=principal,
            company_id=company_id,
            decision=Decision(allowed=True, reason=RBAC_DISABLED, permission=label),
        )

    # 2. Role facts
    grants = await effective_grants(request, services, principal, company_id)

    # 3. Evaluate
    decision = _decide(grants, required, match, company_id)

    # 4. Audit
    if decision.allowed:
        result = AuditResult.allow
    elif mode == EnforcementMode.dry_run:
        result = AuditResult.would_block
    else:
        result = AuditResult.deny

    services.audit.log_permission_check(
        principal.id,
        decision.permission,
        result,
        path=request.url.path,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )

    access = AccessContext(
        principal=principal,
        company_id=company_id,
        decision=decision,
        grants=grants,
    )

    if decision.allowed:
        return access

    # 5. Outcome
    if mode == EnforcementMode.dry_run:
        logger.warning(f"🔐 RBAC: WOULD_BLOCK - {label} for {principal.id} at {request.url.path}")
        return access

    logger.warning(
        f"🔐 RBAC: BLOCKED - {label} for {principal.id} at {request.url.path} ({decision.reason})"
    )
    # all-of reports only the first unmet permission
    unmet = [decision.permission] if match == MATCH_ALL else required
    raise Unauthorized(unmet, reason=decision.reason)


# ============================================================
# HANDLER WRAPPERS
# ============================================================
def rbac_error_response(exc: RBACError) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error(f"🔐 RBAC configuration error: {exc.reason}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
        headers=exc.headers,
    )


def _wrap(permissions, match: str, handler: Optional[Callable], services_factory: Optional[Callable]):
    required = validate_permissions(permissions)
    factory = services_factory or build_guard_services

    def decorate(fn: Callable) -> Callable:
        @functools.wraps(fn)
        async def guarded(request: Request, *args, **kwargs):
            try:
                await authorize(request, required, factory(), match)
            except RBACError as exc:
                return rbac_error_response(exc)
            return await fn(request, *args, **kwargs)

        return guarded

    if handler is not None:
        return decorate(handler)
    return decorate


def with_rbac(permission: str, handler: Optional[Callable] = None, services_factory: Optional[Callable] = None):
    """
    Guard an `async def handler(request, ...)` with one permission.

        guarded = with_rbac("contract:read:own", handler)

        @with_rbac("contract:read:own")
        async def handler(request): ...
    """
    return _wrap([permission], MATCH_SINGLE, handler, services_factory)


def with_any_rbac(permissions: Sequence[str], handler: Optional[Callable] = None, services_factory: Optional[Callable] = None):
    """Allow when the caller holds any one of the listed permissions."""
    return _wrap(list(permissions), MATCH_ANY, handler, services_factory)


def with_all_rbac(permissions: Sequence[str], handler: Optional[Callable] = None, services_factory: Optional[Callable] = None):
    """Allow only when the caller holds every listed permission."""
    return _wrap(list(permissions), MATCH_ALL, handler, services_factory)
