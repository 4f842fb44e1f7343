"""
FastAPI Post Backend package.

The application instance lives in post_api.main; importing this package does
not build it, so stores and services can be used on their own.
"""

__version__ = "0.1.0"
