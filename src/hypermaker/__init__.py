"""One-sided maker quoting agent with portfolio risk management."""

__version__ = "1.0.0"
