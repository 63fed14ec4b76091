"""
Tubely Backend Application Package

Video ingest service that stages user uploads, remuxes them for progressive
(fast-start) playback, classifies their orientation, stores them in an
S3-compatible bucket and hands out presigned URLs on read.

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Infrastructure clients (database, storage, auth)
- models/: Pydantic data models
- services/: The media pipeline and the video read/write services
- utils/: Validation and logging helpers
"""

__version__ = "1.0.0"
