"""Authentication and authorization.

Learn: Two layers, applied as FastAPI dependencies:
1. Authentication gate → bearer token (header or `jwt` cookie) → User
2. Project access guard → (user, project) membership → allowed roles

Handlers receive the resolved User / Membership and never re-check them.
"""
