"""Casino table games: one human against bots and a dealer."""

__version__ = "0.1.0"
