"""TabScore: a compiler from guitar tablature directives to tab + notation scores."""

__version__ = "0.1.0"
