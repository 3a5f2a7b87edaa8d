"""Infrastructure layer: backing stores, key codec, and serialization."""
