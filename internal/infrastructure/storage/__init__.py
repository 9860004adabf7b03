"""
Media storage infrastructure package.
"""
from .s3_uploader import S3MediaUploader

__all__ = ["S3MediaUploader"]
