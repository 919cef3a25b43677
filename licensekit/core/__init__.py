"""Core license model: values, registries, schemas, validation and processing."""
