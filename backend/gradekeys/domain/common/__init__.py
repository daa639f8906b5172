"""Cross-cutting domain primitives: errors, identifiers, unit of work."""
