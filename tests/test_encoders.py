"""Tests for perch.http.encoders — response encoders and JSON escaping."""

import json
import pickle

import pytest

from perch.errors import ConfigurationError, InvalidResponseValue
from perch.http.encoders import (
    HtmlResponse,
    JavaScriptResponse,
    JsonResponse,
    SerializeResponse,
    encoder_for,
    escape_json_for_html,
)


class TestHtmlResponse:
    @pytest.mark.parametrize(("value", "body"), [("hi", b"hi"), (42, b"42"), (1.5, b"1.5"), (True, b"True")])
    def test_scalars(self, value: object, body: bytes) -> None:
        assert HtmlResponse().render(value) == body

    def test_rejects_containers(self) -> None:
        with pytest.raises(InvalidResponseValue, match="scalar"):
            HtmlResponse().render(["a"])

    def test_rejects_none(self) -> None:
        with pytest.raises(InvalidResponseValue):
            HtmlResponse().render(None)

    def test_respond_headers(self) -> None:
        response = HtmlResponse().respond("x", status=201)
        assert response.status == 201
        assert response.content_type == "text/html; charset=utf-8"


class TestJsonEnvelope:
    def test_data(self) -> None:
        body = json.loads(JsonResponse().render({"x": 1}, status=200, elapsed=0.25))
        assert body["data"] == {"x": 1}
        assert body["success"] is True
        assert body["header"] == {"execution_time": 0.25, "response_code": 200}
        assert "error" not in body

    def test_error(self) -> None:
        body = json.loads(JsonResponse().render({"error": "bad"}, status=422))
        assert body["error"] == "bad"
        assert "data" not in body
        assert body["success"] is False
        assert body["header"]["response_code"] == 422

    def test_error_key_with_ok_status(self) -> None:
        body = json.loads(JsonResponse().render({"error": None}))
        assert body["success"] is True

    def test_value_not_mutated(self) -> None:
        value = {"x": 1}
        JsonResponse().render(value)
        assert value == {"x": 1}

    def test_without_defaults(self) -> None:
        assert json.loads(JsonResponse(with_defaults=False).render([1, 2])) == [1, 2]

    def test_headers(self) -> None:
        headers = dict(JsonResponse().respond({}).headers)
        assert headers["Content-Type"] == "application/json; charset=utf-8"
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert headers["X-Content-Type-Options"] == "nosniff"
        assert headers["X-Frame-Options"] == "deny"

    def test_sets_and_to_json(self) -> None:
        class Point:
            def to_json(self):
                return {"x": 1, "y": 2}

        payload = {"tags": frozenset({"a"}), "point": Point()}
        body = json.loads(JsonResponse(with_defaults=False).render(payload))
        assert body == {"tags": ["a"], "point": {"x": 1, "y": 2}}

    def test_unencodable(self) -> None:
        with pytest.raises(InvalidResponseValue, match="cannot encode"):
            JsonResponse().render({"x": object()})


class TestJsonEscaping:
    def test_html_characters_escaped(self) -> None:
        body = JsonResponse(with_defaults=False).render({"html": "<a href='x'>&</a>"})
        for char in (b"<", b">", b"&", b"'"):
            assert char not in body
        assert json.loads(body) == {"html": "<a href='x'>&</a>"}

    def test_inner_quotes_escaped(self) -> None:
        body = JsonResponse(with_defaults=False).render({"q": 'say "hi"'})
        assert b"\\u0022hi\\u0022" in body
        assert json.loads(body) == {"q": 'say "hi"'}

    def test_backslash_preserved(self) -> None:
        body = JsonResponse(with_defaults=False).render({"p": 'C:\\"dir'})
        assert json.loads(body) == {"p": 'C:\\"dir'}

    def test_escape_function(self) -> None:
        assert escape_json_for_html('"<b>"') == '"\\u003Cb\\u003E"'

    def test_non_ascii_kept(self) -> None:
        body = JsonResponse(with_defaults=False).render("héllo")
        assert "héllo".encode() in body


class TestJavaScriptResponse:
    def test_str(self) -> None:
        assert JavaScriptResponse().render("alert(1);") == b"alert(1);"

    def test_bytes(self) -> None:
        assert JavaScriptResponse().render(b"x()") == b"x()"

    def test_rejects_other(self) -> None:
        with pytest.raises(InvalidResponseValue):
            JavaScriptResponse().render({"x": 1})

    def test_content_type(self) -> None:
        assert JavaScriptResponse().respond("").content_type == "text/javascript; charset=utf-8"


class TestSerializeResponse:
    def test_round_trips_through_pickle(self) -> None:
        value = {"a": [1, 2], "b": "c"}
        body = SerializeResponse().render(value)
        assert pickle.loads(body) == value

    def test_ascii_protocol(self) -> None:
        SerializeResponse().render({"a": 1}).decode("ascii")

    def test_unpicklable(self) -> None:
        with pytest.raises(InvalidResponseValue):
            SerializeResponse().render(lambda: None)


class TestEncoderFor:
    def test_names(self) -> None:
        assert isinstance(encoder_for("html"), HtmlResponse)
        assert isinstance(encoder_for("script"), JavaScriptResponse)
        assert isinstance(encoder_for("serialize"), SerializeResponse)

    def test_json_defaults_flag(self) -> None:
        encoder = encoder_for("json", json_with_defaults=False)
        assert isinstance(encoder, JsonResponse)
        assert encoder.with_defaults is False

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError):
            encoder_for("xml")
