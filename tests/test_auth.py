"""Tests for perch.middleware.auth — bearer tokens and route scopes."""

import json

import pytest

from perch.context import Context
from perch.errors import ConfigurationError, HTTPError
from perch.http.request import Request
from perch.middleware.auth import (
    BearerConfig,
    BearerTokenMiddleware,
    InsufficientScope,
    InvalidClient,
    InvalidGrant,
    InvalidRequest,
    InvalidToken,
    TokenInfo,
)
from perch.routing.router import Router

_TOKENS = {
    "reader": TokenInfo(owner_id=1, scopes=frozenset({"read"})),
    "admin": TokenInfo(owner_id=2, scopes=frozenset({"read", "write"})),
}


def _validate(token: str) -> TokenInfo:
    try:
        return _TOKENS[token]
    except KeyError:
        raise InvalidToken("Unknown token.") from None


def _router(**config) -> Router:
    router = Router()
    router.use(BearerTokenMiddleware(BearerConfig(validate_token=_validate, **config)))

    @router.get("/public")
    def public():
        return "public"

    @router.get("/notes", options={"scope": "read"})
    def notes(context: Context):
        return f"notes for {context.state['owner_id']}"

    @router.post("/notes", options={"scope": ["read", "write"]})
    def create(context: Context):
        return "created"

    return router


def _call(router: Router, method: str, path: str, token: str | None = None):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return router.execute(Request.build(method, path, headers=headers))


class TestErrors:
    def test_statuses(self) -> None:
        assert InvalidRequest().status == 400
        assert InvalidToken().status == 401
        assert InvalidClient().status == 401
        assert InvalidGrant().status == 400
        assert InsufficientScope().status == 403

    def test_status_override(self) -> None:
        assert InvalidToken("expired", status=400).status == 400

    def test_is_http_error(self) -> None:
        with pytest.raises(HTTPError):
            raise InvalidToken("nope")

    def test_to_json(self) -> None:
        assert InsufficientScope("need write").to_json() == {
            "code": 403,
            "error": "insufficient_scope",
            "error_description": "need write",
        }


class TestBearerTokenMiddleware:
    def test_requires_validator(self) -> None:
        with pytest.raises(ConfigurationError, match="validate_token"):
            BearerTokenMiddleware(BearerConfig())

    def test_public_route_without_token(self) -> None:
        assert _call(_router(), "GET", "/public").text == "public"

    def test_scoped_route_without_token(self) -> None:
        response = _call(_router(), "GET", "/notes")
        assert response.status == 401
        assert response.header("WWW-Authenticate") == 'Bearer error="invalid_token"'
        assert json.loads(response.body)["error"] == "invalid_token"

    def test_validator_receives_token(self) -> None:
        seen: list[str] = []

        def validate(token: str) -> TokenInfo:
            seen.append(token)
            return _validate(token)

        router = Router()
        router.use(BearerTokenMiddleware(BearerConfig(validate_token=validate)))
        router.get("/public")(lambda: "public")
        assert _call(router, "GET", "/public", token="reader").text == "public"
        assert seen == ["reader"]

    def test_valid_token_records_owner(self) -> None:
        response = _call(_router(), "GET", "/notes", token="reader")
        assert response.status == 200
        assert response.text == "notes for 1"

    def test_unknown_token(self) -> None:
        response = _call(_router(), "GET", "/public", token="forged")
        assert response.status == 401
        body = json.loads(response.body)
        assert body == {"code": 401, "error": "invalid_token", "error_description": "Unknown token."}

    def test_insufficient_scope(self) -> None:
        response = _call(_router(), "POST", "/notes", token="reader")
        assert response.status == 403
        assert response.header("WWW-Authenticate") is None
        assert json.loads(response.body)["error"] == "insufficient_scope"

    def test_all_scopes_granted(self) -> None:
        assert _call(_router(), "POST", "/notes", token="admin").text == "created"

    def test_scope_revoked(self) -> None:
        router = _router(scope_allowed=lambda owner, scope: scope != "write")
        response = _call(router, "POST", "/notes", token="admin")
        assert response.status == 403
        assert "no longer granted" in json.loads(response.body)["error_description"]

    def test_on_owner_callback(self) -> None:
        owners = []
        _call(_router(on_owner=owners.append), "GET", "/notes", token="admin")
        assert owners == [2]

    def test_other_scheme_ignored(self) -> None:
        router = _router()
        request = Request.build("GET", "/public", headers={"Authorization": "Basic abc"})
        assert router.execute(request).text == "public"

    def test_custom_header(self) -> None:
        router = _router(token_header="X-Api-Token", token_scheme="Token")
        request = Request.build("GET", "/notes", headers={"X-Api-Token": "Token reader"})
        assert router.execute(request).status == 200

    def test_invalid_scope_option(self) -> None:
        router = Router()
        router.use(BearerTokenMiddleware(BearerConfig(validate_token=_validate)))
        router.get("/x", options={"scope": 42})(lambda: "x")
        with pytest.raises(ConfigurationError, match="must be a string"):
            _call(router, "GET", "/x", token="reader")
