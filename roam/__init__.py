"""
Roam persistence bootstrap.

Resolves database credentials, brings the schema up to date and hands out
data-access handles for the Roam desktop application.
"""

__version__ = "1.0.0"
