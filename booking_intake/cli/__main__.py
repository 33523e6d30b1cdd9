"""CLI entry point.

Allows running the CLI as a module: python -m booking_intake.cli
"""

from booking_intake.cli import app

if __name__ == "__main__":
    app()
