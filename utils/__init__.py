"""
Operational utilities: pre-flight runtime checks
"""
