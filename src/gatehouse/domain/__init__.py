"""Domain layer: entities, exceptions and authorization services."""
