"""Tests for the exception hierarchy."""

import pytest

from mssql_tui.core.exceptions import (
    ConfigError,
    InputError,
    MssqlTuiError,
    NetworkError,
    OutputError,
    QueryInterruptedError,
    TimeoutError,
    UnsupportedTypeError,
)
from mssql_tui.core.exit_codes import ExitCode


@pytest.mark.unit
class TestExitCodes:
    def test_exit_code_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.USAGE_ERROR == 2
        assert ExitCode.INPUT_ERROR == 3
        assert ExitCode.OUTPUT_ERROR == 4
        assert ExitCode.NETWORK_ERROR == 5
        assert ExitCode.TIMEOUT == 6
        assert ExitCode.CONFIG_ERROR == 7

    def test_exit_code_is_int(self):
        for code in ExitCode:
            assert isinstance(code, int)


@pytest.mark.unit
class TestMssqlTuiError:
    def test_base_exception(self):
        err = MssqlTuiError("test error")
        assert str(err) == "test error"
        assert err.message == "test error"
        assert err.exit_code == ExitCode.GENERAL_ERROR

    def test_is_exception(self):
        assert issubclass(MssqlTuiError, Exception)


@pytest.mark.unit
class TestNetworkError:
    def test_exit_code(self):
        assert NetworkError("connection failed").exit_code == ExitCode.NETWORK_ERROR

    def test_inherits_from_base(self):
        assert isinstance(NetworkError("connection failed"), MssqlTuiError)


@pytest.mark.unit
class TestTimeoutError:
    def test_exit_code(self):
        assert TimeoutError("query timeout").exit_code == ExitCode.TIMEOUT

    def test_is_network_error(self):
        assert isinstance(TimeoutError("login timeout"), NetworkError)

    def test_shadows_builtin(self):
        import builtins

        assert TimeoutError is not builtins.TimeoutError


@pytest.mark.unit
class TestInputAndOutputErrors:
    def test_input_error(self):
        err = InputError("file not found")
        assert err.exit_code == ExitCode.INPUT_ERROR
        assert isinstance(err, MssqlTuiError)

    def test_output_error(self):
        err = OutputError("cannot write out.csv")
        assert err.exit_code == ExitCode.OUTPUT_ERROR
        assert isinstance(err, MssqlTuiError)


@pytest.mark.unit
class TestConfigError:
    def test_exit_code(self):
        assert ConfigError("bad config").exit_code == ExitCode.CONFIG_ERROR


@pytest.mark.unit
class TestQueryErrors:
    def test_unsupported_type_is_general_error(self):
        err = UnsupportedTypeError("cast the column")
        assert err.exit_code == ExitCode.GENERAL_ERROR
        assert err.message == "cast the column"

    def test_interrupted_default_message(self):
        err = QueryInterruptedError()
        assert err.message == "Query execution was interrupted"

    def test_interrupted_custom_message(self):
        assert QueryInterruptedError("worker died").message == "worker died"


@pytest.mark.unit
class TestCatchAll:
    def test_catch_all_with_base(self):
        errors = [
            NetworkError("net"),
            TimeoutError("timeout"),
            InputError("input"),
            OutputError("output"),
            ConfigError("config"),
            UnsupportedTypeError("type"),
            QueryInterruptedError(),
        ]
        for err in errors:
            with pytest.raises(MssqlTuiError):
                raise err
