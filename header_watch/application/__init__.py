"""
Application module - Long-running workflows built on the health checks.
"""
