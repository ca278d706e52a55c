"""Leaf libraries: configuration, domain types, checkers and storage."""
