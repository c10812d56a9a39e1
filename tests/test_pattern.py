"""Tests for perch.routing.pattern — template compiler and segment matcher."""

import pytest

from perch.errors import ConfigurationError, PatternError
from perch.routing.pattern import Literal, Param, Wildcard, compile_pattern
from perch.routing.router import Router


class TestCompilePattern:
    def test_root(self) -> None:
        assert compile_pattern("/").segments == ()

    def test_empty_template_is_root(self) -> None:
        assert compile_pattern("").segments == ()

    def test_literals(self) -> None:
        pattern = compile_pattern("/api/v2/users")
        assert pattern.segments == (Literal("api"), Literal("v2"), Literal("users"))

    def test_param(self) -> None:
        pattern = compile_pattern("/users/{id}")
        assert pattern.segments == (Literal("users"), Param("id"))
        assert pattern.param_names == ("id",)

    def test_typed_param(self) -> None:
        pattern = compile_pattern("/users/{id:int}")
        assert pattern.segments[1] == Param("id", converter="int")

    def test_optional_param(self) -> None:
        pattern = compile_pattern("/greet/{name?}")
        assert pattern.segments[1] == Param("name", nullable=True)

    def test_named_wildcard(self) -> None:
        pattern = compile_pattern("/files/*path")
        assert pattern.segments[-1] == Wildcard("path")
        assert pattern.has_wildcard is True

    def test_unnamed_wildcard(self) -> None:
        pattern = compile_pattern("/files/*")
        assert pattern.segments[-1] == Wildcard("wildcard")

    def test_param_names_in_declaration_order(self) -> None:
        pattern = compile_pattern("/{org}/repos/{repo}/*rest")
        assert pattern.param_names == ("org", "repo", "rest")

    def test_str_is_template(self) -> None:
        assert str(compile_pattern("/a/{b}")) == "/a/{b}"


class TestPatternErrors:
    def test_two_wildcards(self) -> None:
        with pytest.raises(PatternError, match="wildcard"):
            compile_pattern("/*a/*b")

    def test_wildcard_not_last(self) -> None:
        with pytest.raises(PatternError, match="final segment"):
            compile_pattern("/files/*path/edit")

    def test_unknown_converter(self) -> None:
        with pytest.raises(PatternError, match="unknown converter"):
            compile_pattern("/users/{id:uuid}")

    def test_malformed_param(self) -> None:
        with pytest.raises(PatternError, match="malformed"):
            compile_pattern("/users/{id")

    def test_partial_segment_param(self) -> None:
        with pytest.raises(PatternError, match="whole segment"):
            compile_pattern("/users/user-{id}")

    def test_duplicate_name(self) -> None:
        with pytest.raises(PatternError, match="duplicate"):
            compile_pattern("/{id}/items/{id}")

    def test_optional_not_last(self) -> None:
        with pytest.raises(PatternError, match="optional parameter must be the final segment"):
            compile_pattern("/{a?}/b")

    def test_rejects_angle_bracket_param(self) -> None:
        with pytest.raises(PatternError) as exc_info:
            compile_pattern("/share/<slug>")
        assert "{param}" in str(exc_info.value)
        assert exc_info.value.template == "/share/<slug>"

    def test_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            compile_pattern("/:id")


class TestMatch:
    def test_literal_match(self) -> None:
        result = compile_pattern("/users").match("/users")
        assert result is not None
        assert result.consumed == "/users"
        assert result.params == {}

    def test_literal_is_case_sensitive(self) -> None:
        assert compile_pattern("/users").match("/Users") is None

    def test_param_binds_raw_string(self) -> None:
        result = compile_pattern("/users/{id:int}").match("/users/42")
        assert result is not None
        assert result.params == {"id": "42"}

    def test_converter_rejects_segment(self) -> None:
        assert compile_pattern("/users/{id:int}").match("/users/abc") is None

    def test_float_converter(self) -> None:
        pattern = compile_pattern("/price/{amount:float}")
        assert pattern.match("/price/9.99") is not None
        assert pattern.match("/price/-3") is not None
        assert pattern.match("/price/nine") is None

    def test_extra_segments_rejected(self) -> None:
        assert compile_pattern("/users").match("/users/42") is None

    def test_missing_segment_rejected(self) -> None:
        assert compile_pattern("/users/{id}").match("/users") is None

    def test_optional_param_absent(self) -> None:
        result = compile_pattern("/greet/{name?}").match("/greet")
        assert result is not None
        assert result.params == {"name": None}
        assert result.consumed == "/greet"

    def test_optional_param_present(self) -> None:
        result = compile_pattern("/greet/{name?}").match("/greet/ada")
        assert result is not None
        assert result.params == {"name": "ada"}

    def test_trailing_slash_and_empty_segments_ignored(self) -> None:
        pattern = compile_pattern("/a/b")
        assert pattern.match("/a/b/") is not None
        assert pattern.match("//a//b") is not None

    def test_root_matches_root_only(self) -> None:
        pattern = compile_pattern("/")
        assert pattern.match("/") is not None
        assert pattern.match("/x") is None


class TestWildcard:
    def test_consumes_remainder(self) -> None:
        result = compile_pattern("/files/*path").match("/files/a/b/c.txt")
        assert result is not None
        assert result.params == {"path": "a/b/c.txt"}
        assert result.consumed == "/files/a/b/c.txt"

    def test_empty_remainder(self) -> None:
        result = compile_pattern("/files/*path").match("/files")
        assert result is not None
        assert result.params == {"path": ""}

    def test_remainder_kept_verbatim(self) -> None:
        result = compile_pattern("/static/*").match("/static/css//site.css")
        assert result is not None
        assert result.params == {"wildcard": "css//site.css"}


class TestPrefixMatch:
    def test_leaves_remainder(self) -> None:
        result = compile_pattern("/api").match("/api/users/1", prefix=True)
        assert result is not None
        assert result.consumed == "/api"

    def test_binds_params(self) -> None:
        result = compile_pattern("/orgs/{org}").match("/orgs/acme/repos", prefix=True)
        assert result is not None
        assert result.consumed == "/orgs/acme"
        assert result.params == {"org": "acme"}

    def test_root_prefix_consumes_nothing(self) -> None:
        result = compile_pattern("/").match("/anything", prefix=True)
        assert result is not None
        assert result.consumed == ""

    def test_prefix_still_requires_all_segments(self) -> None:
        assert compile_pattern("/api/v1").match("/api", prefix=True) is None


class TestParamsRoundTrip:
    @pytest.mark.parametrize(
        ("template", "path", "params"),
        [
            ("/users/{id}", "/users/42", {"id": "42"}),
            ("/users/{name}", "/users/zoë", {"name": "zoë"}),
            ("/orgs/{org}/repos/{repo}", "/orgs/acme/repos/perch", {"org": "acme", "repo": "perch"}),
            ("/items/{id:int}/{slug}", "/items/-7/blue-shirt", {"id": "-7", "slug": "blue-shirt"}),
            ("/price/{amount:float}", "/price/2.50", {"amount": "2.50"}),
            ("/greet/{name?}", "/greet", {"name": None}),
            ("/greet/{name?}", "/greet/ada", {"name": "ada"}),
            ("/{lang}/page/{n:int?}", "/en/page/3", {"lang": "en", "n": "3"}),
            ("/{lang}/page/{n:int?}", "/en/page", {"lang": "en", "n": None}),
            ("/{lang}/docs/*page", "/en/docs/guide/intro.md", {"lang": "en", "page": "guide/intro.md"}),
            ("/{lang}/docs/*page", "/en/docs", {"lang": "en", "page": ""}),
            ("/static/*", "/static/css/site.css", {"wildcard": "css/site.css"}),
        ],
    )
    def test_match_recovers_values(self, template: str, path: str, params: dict) -> None:
        result = compile_pattern(template).match(path)
        assert result is not None
        assert result.params == params
        assert list(result.params) == list(params)

    @pytest.mark.parametrize(
        ("prefix", "path", "consumed", "params"),
        [
            ("/api", "/api/users", "/api", {}),
            ("/orgs/{org}", "/orgs/acme/repos", "/orgs/acme", {"org": "acme"}),
            ("/v/{major:int}/{minor:int}", "/v/2/1/status", "/v/2/1", {"major": "2", "minor": "1"}),
            ("/{tenant}", "/acme", "/acme", {"tenant": "acme"}),
        ],
    )
    def test_prefix_recovers_values(
        self, prefix: str, path: str, consumed: str, params: dict
    ) -> None:
        result = compile_pattern(prefix).match(path, prefix=True)
        assert result is not None
        assert result.consumed == consumed
        assert result.params == params

    @pytest.mark.parametrize(
        ("path", "params"),
        [
            ("/orgs/acme/repos/3", {"org": "acme", "repo": "3", "rest": ""}),
            ("/orgs/acme/repos/3/tree/main", {"org": "acme", "repo": "3", "rest": "tree/main"}),
            ("/orgs/acme/teams/core", {"org": "acme", "team": "core"}),
            ("/orgs/acme/teams", {"org": "acme", "team": None}),
        ],
    )
    def test_mounted_values_merge(self, path: str, params: dict) -> None:
        root, org = Router(), Router()
        org.get("/repos/{repo:int}/*rest")(lambda: "repo")
        org.get("/teams/{team?}")(lambda: "team")
        root.mount("/orgs/{org}", org)
        resolution = root.resolve(path, "GET")
        assert resolution is not None
        assert resolution.context.params == params
