"""
header_watch - Periodic HTTP status and header watchdog.
"""

__version__ = "0.1.0"
