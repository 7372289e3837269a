"""Command line OAuth 2.0 / OpenID Connect login agent."""

__version__ = "0.1.0"
