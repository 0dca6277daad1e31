"""
HR Portal - Authentication and Authorization Core

bcrypt password hashing, JWT access/refresh tokens and role-based
access control for the HR portal's FastAPI services.
"""

__version__ = "0.1.0"
