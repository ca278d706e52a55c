"""Vocabulary services composed by the expansion engine."""
