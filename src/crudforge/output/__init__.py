"""Renderers: CSV and Excel export buffers, Rich console output."""
