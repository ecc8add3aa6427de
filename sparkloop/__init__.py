"""sparkloop - a single-actor social agent that learns from delayed engagement."""

__version__ = "0.1.0"
