"""policylens: turn long policy documents into structured rules and definitions."""

__version__ = "0.1.0"
