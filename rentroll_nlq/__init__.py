"""Cost-guarded natural language queries over a rent roll dataset."""

__version__ = "0.1.0"
