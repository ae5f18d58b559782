"""Standard exit codes for Arbi CLI.

This module defines the exit codes used across the Arbi CLI
for consistent error reporting and scripting support.
"""


class ExitCode:
    """Standard exit codes for Arbi CLI.

    These codes follow common Unix conventions where possible:
    - 0: Success
    - 1: General error
    - 130: Script terminated by Ctrl+C (SIGINT)

    Arbi-specific codes:
    - 2: Configuration error
    - 3: Scheduler error
    - 5: Network error (backend or management API unreachable)
    - 7: Invalid argument
    - 8: Not found (unknown job name)
    """

    SUCCESS = 0
    GENERAL_ERROR = 1

    CONFIGURATION_ERROR = 2
    SCHEDULER_ERROR = 3
    NETWORK_ERROR = 5
    INVALID_ARGUMENT = 7
    NOT_FOUND = 8

    # 128 + SIGINT
    CANCELLED = 130

    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code.

        Args:
            code: The exit code value

        Returns:
            Human-readable name for the exit code
        """
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.GENERAL_ERROR: "GENERAL_ERROR",
            cls.CONFIGURATION_ERROR: "CONFIGURATION_ERROR",
            cls.SCHEDULER_ERROR: "SCHEDULER_ERROR",
            cls.NETWORK_ERROR: "NETWORK_ERROR",
            cls.INVALID_ARGUMENT: "INVALID_ARGUMENT",
            cls.NOT_FOUND: "NOT_FOUND",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code."""
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.GENERAL_ERROR: "An unexpected error occurred",
            cls.CONFIGURATION_ERROR: "Configuration error or invalid config file",
            cls.SCHEDULER_ERROR: "Cron scheduler is not in a usable state",
            cls.NETWORK_ERROR: "Network or connectivity error",
            cls.INVALID_ARGUMENT: "Invalid command-line argument",
            cls.NOT_FOUND: "Requested job not found",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
