"""
Catalog CMS infrastructure package.
"""
from .client import CMSClient, classify_errors

__all__ = ["CMSClient", "classify_errors"]
