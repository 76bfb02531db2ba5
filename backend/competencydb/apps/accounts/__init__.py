# backend/competencydb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- User accounts and their role
- Role-based module permissions (list / add / edit / delete)
- Login endpoint issuing JWT access tokens
"""
