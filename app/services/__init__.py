"""Service layer: status derivation, transitions, numbering and settings."""
