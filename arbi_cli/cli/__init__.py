"""CLI command modules for Arbi.

Command groups (run, jobs, config) live in their own modules and are
registered on the root Typer app in arbi_cli.main.
"""
