"""
Database Schema

This package defines the tables backing the credential store using the
SQLAlchemy ORM.

Key Models:
- base.py: Declarative base with shared column type annotations
- client.py: Registered OAuth2 clients
- code.py: Single-use authorization codes
- token.py: Access/refresh token pairs, one row per pair
- user.py: Reference user table read by SQLAlchemyUserRepository

Codes and tokens reference clients by `client_id` and users by `user_id`.
The code, access token and refresh token strings each carry a unique index,
which is what rejects duplicate inserts.
"""
