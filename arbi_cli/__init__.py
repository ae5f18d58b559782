"""Arbi CLI - cron-driven job scheduler for marketplace arbitrage automation."""

__app_name__ = "arbi"
__version__ = "0.1.0"
