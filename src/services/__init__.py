"""
Service functions used by the monitoring run.

This package contains configuration and customer loading, cache state
persistence and report email composition.
"""

__all__ = ['customers', 'email', 'settings', 'state']
