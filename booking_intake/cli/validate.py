"""Validate command for configuration files."""

from pathlib import Path

import typer

from booking_intake.services.config_manager import ConfigManager
from booking_intake.cli.utils import (
    handle_errors,
    display_success,
    display_error,
    display_warning,
)


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid! ✅")
    if config.llm is None or not config.llm.has_credentials:
        display_warning("No LLM credentials: structuring will degrade to empty candidates")
