"""
Role-based route guard
Redirects visitors whose role may not open a protected path prefix

Runs ahead of every route and consults only the current request's session
token; it never touches the database.
Reference: https://www.starlette.io/middleware/#basehttpmiddleware
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from marketplace.core.config import settings
from marketplace.core.dependencies import extract_session_token, get_identity_service
from marketplace.models.user import UserRole

logger = logging.getLogger(__name__)

PRODUCT_MANAGEMENT_DENIED = "/dashboard?message=Access%20Denied%20to%20Product%20Management"


@dataclass(frozen=True)
class ProtectedRoute:
    """
    A protected path prefix.

    Attributes:
        path_prefix: Requests whose path starts with this prefix are checked
        allowed_roles: Roles that may pass
        redirect_path: Where everyone else is sent (ACCESS_DENIED_PATH if None)
    """

    path_prefix: str
    allowed_roles: frozenset
    redirect_path: Optional[str] = None


DEFAULT_PROTECTED_ROUTES: tuple[ProtectedRoute, ...] = (
    ProtectedRoute(
        "/dashboard/categories",
        frozenset({UserRole.ARTISAN, UserRole.ADMIN}),
        "/dashboard?message=Access%20Denied%20to%20Categories",
    ),
    ProtectedRoute(
        "/products/categories",
        frozenset({UserRole.ARTISAN, UserRole.ADMIN}),
        "/dashboard?message=Access%20Denied%20to%20Product%20Categories",
    ),
    ProtectedRoute(
        "/admin",
        frozenset({UserRole.ADMIN}),
        "/dashboard?message=Administrator%20Access%20Required",
    ),
    ProtectedRoute(
        "/products/manage",
        frozenset({UserRole.ARTISAN, UserRole.ADMIN}),
        PRODUCT_MANAGEMENT_DENIED,
    ),
    ProtectedRoute("/artisan", frozenset({UserRole.ARTISAN}), PRODUCT_MANAGEMENT_DENIED),
    ProtectedRoute("/products/create", frozenset({UserRole.ARTISAN}), PRODUCT_MANAGEMENT_DENIED),
)


class RouteGuard:
    """
    Table-driven path authorization.

    When several prefixes match a path, the longest (most specific) one
    decides, regardless of table order.
    """

    def __init__(
        self,
        routes: Iterable[ProtectedRoute] = DEFAULT_PROTECTED_ROUTES,
        default_redirect: Optional[str] = None,
    ):
        self.routes: Sequence[ProtectedRoute] = sorted(
            routes, key=lambda route: len(route.path_prefix), reverse=True
        )
        self.default_redirect = default_redirect or settings.ACCESS_DENIED_PATH

    def match(self, path: str) -> Optional[ProtectedRoute]:
        for route in self.routes:
            if path.startswith(route.path_prefix):
                return route
        return None

    def check(self, path: str, role: Optional[UserRole]) -> Optional[str]:
        """
        Returns the redirect target when the role may not open path, None to
        let the request through. A missing role (anonymous) is never allowed
        on a protected prefix.
        """
        route = self.match(path)
        if route is None or (role is not None and role in route.allowed_roles):
            return None
        return route.redirect_path or self.default_redirect


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Starlette middleware applying a RouteGuard to every request."""

    def __init__(self, app: ASGIApp, guard: Optional[RouteGuard] = None):
        super().__init__(app)
        self.guard = guard or RouteGuard()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if self.guard.match(path) is not None:
            token = extract_session_token(request)
            identity = await get_identity_service().decode_session_token(token)
            role = identity.role if identity else None
            redirect_path = self.guard.check(path, role)
            if redirect_path is not None:
                logger.info(f"Route guard redirected {role.value if role else 'anonymous'} from {path}")
                return RedirectResponse(
                    redirect_path, status_code=status.HTTP_307_TEMPORARY_REDIRECT
                )
        return await call_next(request)
