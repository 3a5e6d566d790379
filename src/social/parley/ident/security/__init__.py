"""
Security Primitives

Stateless helpers used by the identity flows:
- hashing.py: Salt generation and PBKDF2 password digests
- password_policy.py: Password strength rules
"""
