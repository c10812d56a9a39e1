"""Bearer-token middleware with per-route scope checks.

Authenticates API requests carrying ``Authorization: Bearer <token>``.
Token validation is delegated to a callback supplied by the application
(typically backed by an OAuth2 server); perch only extracts the token,
records the result on the context, and enforces the scope a route asks
for through its ``scope`` option.

Usage::

    from perch.middleware.auth import BearerConfig, BearerTokenMiddleware, TokenInfo

    def validate(token: str) -> TokenInfo:
        grant = tokens.lookup(token)          # raises InvalidToken when unknown
        return TokenInfo(owner_id=grant.owner, scopes=frozenset(grant.scopes))

    api.use(BearerTokenMiddleware(BearerConfig(validate_token=validate)))

    @api.get("/me", options={"scope": "profile"})
    def me(context: Context):
        return {"owner": context.state["owner_id"]}

Requests without a bearer token pass through untouched unless the route
declares a scope, in which case they are answered with 401.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from perch.errors import ConfigurationError, HTTPError
from perch.http.encoders import JsonResponse
from perch.middleware.protocol import CONTINUE, Halt, MiddlewareDecision

if TYPE_CHECKING:
    from perch.context import Context
    from perch.routing.route import Route

logger = logging.getLogger("perch.middleware")

# ---------------------------------------------------------------------------
# OAuth2 errors
# ---------------------------------------------------------------------------


class OAuth2Error(HTTPError):
    """An OAuth2 failure that maps to an error response.

    ``error`` is the RFC 6749 / RFC 6750 error code.
    """

    error: ClassVar[str] = "server_error"
    default_status: ClassVar[int] = 400

    def __init__(self, detail: str = "", *, status: int | None = None) -> None:
        super().__init__(status=status or self.default_status, detail=detail)

    def to_json(self) -> dict[str, Any]:
        return {
            "code": self.status,
            "error": self.error,
            "error_description": self.detail,
        }


class InvalidRequest(OAuth2Error):
    error = "invalid_request"
    default_status = 400


class InvalidToken(OAuth2Error):
    error = "invalid_token"
    default_status = 401


class InvalidClient(OAuth2Error):
    error = "invalid_client"
    default_status = 401


class InvalidGrant(OAuth2Error):
    error = "invalid_grant"
    default_status = 400


class InsufficientScope(OAuth2Error):
    error = "insufficient_scope"
    default_status = 403


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """What a validated token grants."""

    owner_id: Any
    scopes: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class BearerConfig:
    """Bearer-token middleware configuration.

    Attributes:
        validate_token: Returns ``TokenInfo`` for a token, or raises an
            ``OAuth2Error`` (usually ``InvalidToken``).
        scope_allowed: Optional second check, ``(owner_id, scope) -> bool``,
            for scopes the owner may have lost since the token was issued.
        on_owner: Called with the owner id after a token validates.
        scope_option: Route option naming the required scope(s).
        token_header: HTTP header carrying the token.
        token_scheme: Expected scheme prefix.
    """

    validate_token: Callable[[str], TokenInfo] | None = None
    scope_allowed: Callable[[Any, str], bool] | None = None
    on_owner: Callable[[Any], None] | None = None
    scope_option: str = "scope"
    token_header: str = "Authorization"
    token_scheme: str = "Bearer"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class BearerTokenMiddleware:
    """Validates bearer tokens and enforces route scopes.

    On success stores ``owner_id`` and ``scopes`` in ``context.state``.
    Any ``OAuth2Error`` becomes a ``Halt`` with a JSON body::

        {"code": 403, "error": "insufficient_scope", "error_description": "..."}
    """

    __slots__ = ("_config", "_encoder", "_validate")

    def __init__(self, config: BearerConfig) -> None:
        validate = config.validate_token
        if validate is None:
            msg = "BearerConfig requires 'validate_token' to be set."
            raise ConfigurationError(msg)
        self._config = config
        self._validate = validate
        self._encoder = JsonResponse(with_defaults=False)

    def _extract_token(self, context: Context) -> str | None:
        """Extract the bearer token from the configured header."""
        if context.request is None:
            return None
        header = context.request.header(self._config.token_header)
        if header is None:
            return None
        prefix = f"{self._config.token_scheme} "
        if not header.startswith(prefix):
            return None
        token = header[len(prefix) :].strip()
        return token or None

    def _required_scopes(self, route: Route) -> tuple[str, ...]:
        required = route.options.get(self._config.scope_option)
        if required is None:
            return ()
        if isinstance(required, str):
            return (required,)
        if isinstance(required, Iterable):
            return tuple(str(s) for s in required)
        msg = f"Route option {self._config.scope_option!r} must be a string or strings."
        raise ConfigurationError(msg)

    def _check_scopes(self, info: TokenInfo, required: tuple[str, ...]) -> None:
        allowed = self._config.scope_allowed
        for scope in required:
            if scope not in info.scopes:
                raise InsufficientScope(f"Token lacks the {scope!r} scope.")
            if allowed is not None and not allowed(info.owner_id, scope):
                raise InsufficientScope(f"Scope {scope!r} is no longer granted.")

    def error_response(self, error: OAuth2Error) -> Halt:
        """Build the halt decision for *error*."""
        response = self._encoder.respond(error.to_json(), status=error.status)
        if error.status == 401:
            response = response.with_header(
                "WWW-Authenticate", f'{self._config.token_scheme} error="{error.error}"'
            )
        return Halt(response)

    def apply(self, route: Route, context: Context) -> MiddlewareDecision:
        """Authenticate the request and check the route's scope."""
        required = self._required_scopes(route)
        token = self._extract_token(context)

        if token is None:
            if required:
                logger.warning("Denied %s: bearer token required", context.path)
                return self.error_response(InvalidToken("A bearer token is required."))
            return CONTINUE

        try:
            info = self._validate(token)
            context.state["owner_id"] = info.owner_id
            context.state["scopes"] = info.scopes
            if self._config.on_owner is not None:
                self._config.on_owner(info.owner_id)
            self._check_scopes(info, required)
        except OAuth2Error as exc:
            logger.warning("Denied %s: %s", context.path, exc)
            return self.error_response(exc)

        return CONTINUE
