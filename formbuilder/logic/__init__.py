"""Domain logic: type registry, schema derivation, access gate and the form/response operations."""
