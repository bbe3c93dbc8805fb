"""
Core - configuration, errors, session wiring and HTTP plumbing
"""
