"""
Upload Module

Validation of incoming multipart image uploads.
"""

from bgremoval.modules.upload.models import Upload
from bgremoval.modules.upload.validator import sanitize_filename, validate_upload

__all__ = ["Upload", "sanitize_filename", "validate_upload"]
