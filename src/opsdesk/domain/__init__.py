"""Domain layer: entities, services and typed errors."""
