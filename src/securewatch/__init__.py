"""SecureWatch client-side notification engine."""

__version__ = "0.1.0"
