"""Concrete features built on the generic handlers."""
