"""licensekit: schema-driven license documents, file canonicalization and signing."""

__version__ = "0.1.0"
