# Security package init
"""
Blog API — Security Package
=============================

What:  Everything between "a request arrived" and "this principal may do this".

Modules:
    - passwords.py:  argon2 password hashing and verification
    - principal.py:  bearer token issue/decode and the Principal dependencies
    - policy.py:     OwnerOnly / AdminOnly capability checks

Ordering guarantee:
    principal dependency (awaited) → resource loaded by service → policy check
    → mutation. Services never mutate before `enforce()` returns.
"""
