"""Domain layer: status lifecycle, message catalog, envelopes and bulk models."""
