"""mdopen - quickly preview local markdown files in the browser."""

__version__ = "0.4.0"
