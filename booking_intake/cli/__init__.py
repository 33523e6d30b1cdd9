"""Booking intake CLI package.

Usage:
    booking-intake extract contract.pdf --text
    booking-intake import contract.pdf --org org-1 --records shows.json
    booking-intake import forwarded.txt --org org-1 --email
    booking-intake show <job-id>
    booking-intake retry <job-id> --file contract.pdf
    booking-intake improve <job-id>
    booking-intake validate config/intake_config.yaml
"""

import typer

from booking_intake.cli.extract import extract_command
from booking_intake.cli.ingest import import_command
from booking_intake.cli.review import (
    improve_command,
    list_command,
    retry_command,
    show_command,
)
from booking_intake.cli.validate import validate_command

# Create main app
app = typer.Typer(help="Booking intake: documents and emails to reviewable show candidates")

app.command(name="extract")(extract_command)
app.command(name="import")(import_command)
app.command(name="show")(show_command)
app.command(name="list")(list_command)
app.command(name="retry")(retry_command)
app.command(name="improve")(improve_command)
app.command(name="validate")(validate_command)

__all__ = [
    "app",
    "extract_command",
    "import_command",
    "show_command",
    "list_command",
    "retry_command",
    "improve_command",
    "validate_command",
]
