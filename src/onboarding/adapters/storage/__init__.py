"""Document storage adapters."""

from .cloudinary import CloudinaryFileUploader

__all__ = ["CloudinaryFileUploader"]
