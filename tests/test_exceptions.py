"""Unit tests for copycopter_client.exceptions module."""

import pytest

from copycopter_client.exceptions import (
    CopycopterException,
    ConfigurationException,
    UnknownOptionException,
    IllegalStateException,
    NetworkException,
    NetworkErrorKind,
    ConnectTimeoutException,
    ReadTimeoutException,
    HttpStatusException,
)


class TestCopycopterException:
    """Tests for CopycopterException base class."""

    def test_create_with_message(self):
        ex = CopycopterException("test message")
        assert str(ex) == "test message"
        assert ex.cause is None

    def test_create_with_cause(self):
        cause = ValueError("original error")
        ex = CopycopterException("wrapper message", cause=cause)
        assert ex.cause is cause

    def test_create_empty(self):
        assert str(CopycopterException()) == ""

    @pytest.mark.parametrize(
        "exception_class",
        [ConfigurationException, IllegalStateException, NetworkException],
    )
    def test_inheritance(self, exception_class):
        assert issubclass(exception_class, CopycopterException)


class TestUnknownOptionException:
    def test_is_configuration_error(self):
        ex = UnknownOptionException("colour")
        assert isinstance(ex, ConfigurationException)
        assert ex.option == "colour"
        assert "colour" in str(ex)


class TestNetworkExceptions:
    """Tests for the transport failure kinds."""

    def test_kind_values(self):
        assert NetworkErrorKind.CONNECT_TIMEOUT.value == "connect-timeout"
        assert NetworkErrorKind.READ_TIMEOUT.value == "read-timeout"
        assert NetworkErrorKind.HTTP_STATUS.value == "http-status"

    def test_connect_timeout(self):
        ex = ConnectTimeoutException("slow")
        assert isinstance(ex, NetworkException)
        assert ex.kind == NetworkErrorKind.CONNECT_TIMEOUT

    def test_read_timeout(self):
        cause = OSError("timed out")
        ex = ReadTimeoutException("slow", cause=cause)
        assert ex.kind == NetworkErrorKind.READ_TIMEOUT
        assert ex.cause is cause

    def test_http_status(self):
        ex = HttpStatusException("bad", status_code=502, body="gateway")
        assert ex.kind == NetworkErrorKind.HTTP_STATUS
        assert ex.status_code == 502
        assert ex.body == "gateway"

    def test_http_status_without_body(self):
        assert HttpStatusException("bad", status_code=404).body is None
