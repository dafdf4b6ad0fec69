"""
Shared Infrastructure
=====================

Logging setup and timing helpers.
"""
