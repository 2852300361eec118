"""Security gateway: rate limiting, security event logging and input sanitization."""

__version__ = "0.1.0"
