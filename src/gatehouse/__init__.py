"""Gatehouse - authorization and session core for admin applications.

Roles, permissions and abilities on the server; a session lifecycle
manager for API clients.
"""

__version__ = "0.1.0"
