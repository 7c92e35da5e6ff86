"""Slice viewer and image-processing toolkit for NIfTI brain MRI volumes."""

__version__ = "0.1.0"