"""Clients for services the scheduler talks to over HTTP."""

from arbi_cli.services.backend import BackendClient

__all__ = ["BackendClient"]
