"""livedir - serve a directory over HTTP and reload the browser when it changes."""

__version__ = "0.1.0"
