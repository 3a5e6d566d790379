"""
Database Models

This package defines the database models for the identity service using SQLAlchemy ORM.
These models are the only place of record for accounts, their secrets, pending email
verifications and issued session tokens.

Key Models:
- base.py: Base SQLAlchemy model with common type definitions
- users.py: Registered accounts with case-insensitive unique username and email
- credentials.py: Salted password digests bound to an account
- verification.py: One-time email verification codes
- tokens.py: Session tokens issued after login

The data models follow these relationships:
- User: The account; owns everything else
- Credential: Belongs to one User, looked up by the registration email
- VerificationCode: Belongs to one unverified User, deleted when consumed
- SessionToken: Belongs to one User, expires a fixed time after issue

Uniqueness of usernames and emails is enforced by the database itself through
functional indexes on lower(username) and lower(email). Application level checks
exist only to produce friendlier messages.
"""
