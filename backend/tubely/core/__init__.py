"""
Core infrastructure for the Tubely backend.

- auth: Local JWT issuing/validation and the current-user dependency
- database: MongoDB async client (Motor) with connection pooling
- storage: S3-compatible storage client for MinIO/AWS S3

Clients follow the singleton pattern and are created once per process.
"""
