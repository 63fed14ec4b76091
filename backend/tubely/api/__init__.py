"""
Tubely API package.

Endpoints are versioned under URL prefixes; ``v1/`` is served at /api/v1.
"""
