"""
Infrastructure Layer
====================

Infrastructure shared by every bounded context: the database engine and the
tickets table.
"""
