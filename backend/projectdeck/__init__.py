"""ProjectDeck: personal project dashboard backend and client core."""

__version__ = "0.1.0"
