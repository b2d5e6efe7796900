"""
PayDesk transfers: client-side construction, PIN verification and submission
of money transfers against the bank REST API.
"""

__version__ = "1.0.0"
