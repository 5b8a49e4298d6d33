"""
Credential Model - OAuth2 persistence and verification core

This package implements the data-and-verification contract behind an OAuth2
authorization server. A grant-flow orchestrator (authorization-code,
refresh-token, password and client-credentials grants) calls into it to issue
signed tokens, look up and save codes and tokens, resolve clients and users,
revoke, and check scopes.

Key Components:
- model.py: CredentialModel, the façade the orchestrator calls
- tokens.py: TokenFactory, HS256 JWT issuance keyed by each client's secret
- store.py: CredentialStore, the SQLAlchemy adapter for clients, codes and tokens
- scope.py: space-delimited scope parsing and subset checks
- users.py: UserRepository capability for the externally owned user records
- password.py: PasswordHasher capability and its bcrypt implementation
- config.py: environment Settings and validated ModelOptions
- metrics.py: metrics clients (Telegraf or no-op)
- wiring.py: builds a ready CredentialModel from Settings
- schema/: SQLAlchemy tables
- util/: the `credutil` administration CLI

Lifecycle:
1. The orchestrator saves an authorization code, then exchanges it exactly once;
   `revoke_authorization_code` is an atomic delete, so a racing second
   exchange sees False.
2. Token pairs are saved as one row and read until they expire or are revoked
   by their refresh token, which removes the access token with them.

HTTP routing, request validation and the grant-flow state machine live in the
orchestrator, not here.
"""
