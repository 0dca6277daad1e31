"""
HR Portal - Gateway

Request-level concerns shared by every route: role-based authorization,
correlation IDs and structured error responses.
"""
