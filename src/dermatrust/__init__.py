"""dermatrust — trust-backed registry for expert skincare routines."""

__version__ = "0.1.0"
