"""
Shop Trust — verification pipeline for merchant storefront onboarding.

Architecture: GPS check + License OCR check + Photo EXIF check → Advisory flags → Admin review
Philosophy:  Providers may fail. Flags lean toward "unverified". Humans decide.
"""

__version__ = "1.0.0"
