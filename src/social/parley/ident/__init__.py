"""
Parley Ident - account and session service for the Parley messaging platform

This module implements the service that admits new Parley accounts and hands out the session
tokens the rest of the platform uses to authenticate API calls. Message relay, page rendering
and mail delivery live elsewhere; this service only owns accounts and their secrets.

Key Components:
- app: Web application layer with request handlers and server configuration
- identity: Registration and login flows
- model: Database models for accounts, credentials, verification codes and session tokens
- security: Password hashing and password strength rules

Architecture Overview:
1. Registration:
   - Usernames and emails are unique regardless of case
   - Passwords are stored only as salted PBKDF2 digests
   - A one-time verification code is emailed to the new account

2. Login:
   - The first login uses the emailed code and verifies the account
   - Later logins use the password
   - Each login issues an opaque session token valid for seven days

3. Failure Reporting:
   - Login failures share a single message, whatever the cause
   - Storage failures are reported to Sentry with an internal error code and
     surface to callers only as a generic message
"""
