"""
termbank - controlled vocabulary expansion and review engine.

Governs how new scene and dubbing tags enter the curated taxonomy used to
classify music tracks, and keeps historical analysis records consistent with
the canonical vocabulary.
"""

__version__ = "0.1.0"
