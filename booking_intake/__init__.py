"""Booking intake: turn uploaded documents and forwarded emails into reviewable show-booking candidates."""

__version__ = "0.1.0"
