"""
Services package for the Tubely backend.

Business logic for the video upload pipeline and the read path:

- upload_validator: size, ownership and content-type policy
- staging_service: streams uploads into the local staging directory
- remux_service: ffmpeg fast-start remux
- probe_service: ffprobe geometry and orientation classification
- storage_service: object-store uploads, deletes and presigned URLs
- video_repository: MongoDB persistence for video records
- video_upload_service: the end-to-end upload pipeline
- video_service: signed reads, listing, creation and deletion
- thumbnail_service: thumbnail passthrough uploads

Services are plain classes wired together by the FastAPI dependency
functions in ``tubely.api.v1.videos``.
"""
