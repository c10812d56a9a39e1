"""Tests for perch.errors — the exception hierarchy."""

import pytest

from perch.errors import (
    ConfigurationError,
    HTTPError,
    IllegalState,
    InvalidResponseValue,
    MissingParameterError,
    ParameterConversionError,
    PatternError,
    PerchError,
    RenderError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, IllegalState, InvalidResponseValue, RenderError],
    )
    def test_plain_errors_are_perch_errors(self, cls: type) -> None:
        assert issubclass(cls, PerchError)

    def test_pattern_error_is_configuration_error(self) -> None:
        err = PatternError("/a/*b/c", "a wildcard must be the final segment")
        assert isinstance(err, ConfigurationError)
        assert err.template == "/a/*b/c"
        assert "/a/*b/c" in str(err)
        assert "final segment" in str(err)


class TestMissingParameterError:
    def test_fields_and_message(self) -> None:
        err = MissingParameterError("show_user", "id")
        assert err.handler_name == "show_user"
        assert err.param_name == "id"
        assert "'id'" in str(err)
        assert "'show_user'" in str(err)


class TestParameterConversionError:
    def test_message(self) -> None:
        err = ParameterConversionError("id", "abc", int)
        assert str(err) == "Cannot convert 'abc' to int for parameter 'id'."


class TestHTTPError:
    def test_str(self) -> None:
        assert str(HTTPError(status=404, detail="Not here")) == "404: Not here"
        assert str(HTTPError(status=500)) == "500"

    def test_headers_default(self) -> None:
        assert HTTPError(status=400).headers == ()

    def test_raisable(self) -> None:
        with pytest.raises(PerchError):
            raise HTTPError(status=409, detail="conflict")
