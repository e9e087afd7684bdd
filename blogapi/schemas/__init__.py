# Schemas package init
"""
Blog API — Pydantic Schemas
=============================

What:  Request and response models; the API contract.
Why:   ORM models describe storage, these describe what crosses the wire.
       Password hashes, link-table rows and internal flags never leak.

Modules:
    - common.py:    error envelope, health, message responses
    - auth.py:      register / login
    - blog.py:      blog create / update / read / search
    - comment.py:   comment create / read
    - category.py:  category create / update / read
"""
