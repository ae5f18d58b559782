"""HTTP management API for the cron scheduler."""

from arbi_cli.api.app import create_app

__all__ = ["create_app"]
