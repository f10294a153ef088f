"""Domain layer: models, errors, byte-level primitives and pure services."""
