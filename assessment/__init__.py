"""Assessment session engine: question selection and attempt state machines."""

__version__ = "1.0.0"
