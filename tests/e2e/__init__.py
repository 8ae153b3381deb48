"""End-to-end relocation scenarios."""
