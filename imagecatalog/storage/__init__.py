"""Key-value storage and the scene feature store."""
