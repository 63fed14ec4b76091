"""
Utilities package for the Tubely backend.

Modules:
    file_validator: Size and content-type checks, extension mapping
    local_files: Best-effort removal of local scratch files
    logger: Structured logging setup and context adapters
"""
