"""Business logic layer for accounts app.

This package contains the account and group operations:
- Resolved identity (``Actor``) and role checks
- Group membership ledger
- Registration, e-mail verification and password flows
- Bearer token issuing and resolution

Operations take resolved identities and injected collaborators
(mail dispatcher, authentication resolver) as arguments.
"""
