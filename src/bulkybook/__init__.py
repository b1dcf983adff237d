"""BulkyBook online bookstore."""

__version__ = "0.1.0"
