"""
Identity Flows

This package holds the account lifecycle: registering a new account and exchanging
credentials for session tokens.

Key Components:
- registration.py: Registration flow and the password complexity check
- tokens.py: Credential state machine and session token issuance
- email.py: Outbound email senders and the registration message
- errors.py: Typed validation and operational failures with internal error codes
- results.py: Caller-facing result models

Flow Overview:
1. Registration:
   - Username and email are checked for uniqueness, ignoring case
   - The password is checked against the strength rules
   - The user, its credential and a verification code are stored in one transaction
   - The code is emailed to the registrant

2. Login:
   - An unverified account logs in with the emailed code, which verifies it
   - A verified account logs in with its password
   - A session token valid for seven days is issued
"""
