"""Crewboard: multi-tenant project and task tracking API.

Users sign up, create projects, invite teammates by email, and track
tasks inside those projects. Access to every project route is decided
by the caller's membership role (OWNER, ADMIN, MEMBER).
"""

__version__ = "0.1.0"
