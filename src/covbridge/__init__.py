"""covbridge - coverage report discovery and conversion for .NET test runs."""

__version__ = "0.1.0"
