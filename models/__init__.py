"""
models/ - Domain Models
======================
Plain dataclasses describing client configuration and intercepted operations.
"""
