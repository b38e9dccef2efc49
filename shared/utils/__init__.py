"""
Utilities module: Exceptions and schemas.
"""
