"""
Database Models

SQLAlchemy ORM models for the Commu-ng authentication service.

Key Models:
- base.py: Declarative base, shared column annotations and id helpers
- user.py: Console accounts
- community.py: Community tenants and their domains
- session.py: Sessions and single-use exchange tokens

Relationships:
- Session belongs to a User and, when community-scoped, to a Community
- ExchangeToken belongs to a User and names the hostname it may be redeemed on

All timestamps are stored timezone-aware in UTC.
"""
