"""Tests for error handler module."""

import pytest
import typer
from unittest.mock import patch

from arbi_cli.cli.error_handler import handle_errors
from arbi_cli.cli.exit_codes import ExitCode
from arbi_cli.exceptions import (
    ArbiError,
    BackendUnavailableError,
    ConfigurationError,
    JobNotFoundError,
    NetworkError,
    NotFoundError,
    SchedulerError,
    ValidationError,
)


class TestArbiError:
    """Test base ArbiError class."""

    def test_basic_error(self) -> None:
        error = ArbiError("Test error")
        assert error.message == "Test error"
        assert error.exit_code == ExitCode.GENERAL_ERROR
        assert error.details == {}

    def test_error_with_exit_code(self) -> None:
        error = ArbiError("Test error", exit_code=ExitCode.CONFIGURATION_ERROR)
        assert error.exit_code == ExitCode.CONFIGURATION_ERROR

    def test_error_str_without_details(self) -> None:
        assert str(ArbiError("Test error")) == "Test error"

    def test_error_str_with_details(self) -> None:
        error = ArbiError("Test error", details={"key": "value", "count": 42})
        assert str(error) == "Test error (key=value, count=42)"


class TestErrorExitCodes:
    """Each subclass carries its own exit code."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (ConfigurationError("bad"), ExitCode.CONFIGURATION_ERROR),
            (SchedulerError("bad"), ExitCode.SCHEDULER_ERROR),
            (NetworkError("bad"), ExitCode.NETWORK_ERROR),
            (ValidationError("bad"), ExitCode.INVALID_ARGUMENT),
            (NotFoundError("bad"), ExitCode.NOT_FOUND),
            (BackendUnavailableError("bad"), ExitCode.NETWORK_ERROR),
            (JobNotFoundError("cleanup"), ExitCode.NOT_FOUND),
        ],
    )
    def test_default_exit_code(self, error: ArbiError, code: int) -> None:
        assert error.exit_code == code


class TestBackendUnavailableError:
    def test_details(self) -> None:
        error = BackendUnavailableError("Backend returned 503", status_code=503, url="http://b/api")

        assert error.status_code == 503
        assert error.url == "http://b/api"
        assert error.details == {"status_code": 503, "url": "http://b/api"}

    def test_no_details(self) -> None:
        error = BackendUnavailableError("down")

        assert error.details == {}
        assert str(error) == "down"


class TestJobNotFoundError:
    def test_message(self) -> None:
        error = JobNotFoundError("nonexistent")

        assert error.job_name == "nonexistent"
        assert error.message == "Job 'nonexistent' not found"
        assert isinstance(error, NotFoundError)


class TestHandleErrors:
    """Test handle_errors decorator."""

    def test_successful_execution(self) -> None:
        @handle_errors
        def test_func():
            return "success"

        assert test_func() == "success"

    def test_arbi_error_handling(self) -> None:
        @handle_errors
        def test_func():
            raise ConfigurationError("Test config error")

        with pytest.raises(typer.Exit) as exc_info:
            with patch("arbi_cli.cli.error_handler.console"):
                test_func()

        assert exc_info.value.exit_code == ExitCode.CONFIGURATION_ERROR

    def test_details_printed(self) -> None:
        @handle_errors
        def test_func():
            raise NetworkError("Could not reach the Arbi daemon", details={"url": "http://x"})

        with pytest.raises(typer.Exit):
            with patch("arbi_cli.cli.error_handler.console") as mock_console:
                test_func()

        printed = " ".join(str(call.args[0]) for call in mock_console.print.call_args_list)
        assert "Could not reach the Arbi daemon" in printed
        assert "http://x" in printed

    def test_keyboard_interrupt_handling(self) -> None:
        @handle_errors
        def test_func():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            with patch("arbi_cli.cli.error_handler.console"):
                test_func()

        assert exc_info.value.exit_code == ExitCode.CANCELLED

    def test_generic_exception_handling(self) -> None:
        @handle_errors
        def test_func():
            raise ValueError("Test error")

        with pytest.raises(typer.Exit) as exc_info:
            with patch("arbi_cli.cli.error_handler.console"):
                test_func()

        assert exc_info.value.exit_code == ExitCode.GENERAL_ERROR

    def test_typer_exit_re_raised(self) -> None:
        @handle_errors
        def test_func():
            raise typer.Exit(code=42)

        with pytest.raises(typer.Exit) as exc_info:
            test_func()

        assert exc_info.value.exit_code == 42
