from .field_validators import (
    FieldValidator,
    builtin_validators,
    default_validators,
    new_validator_registry,
    register_validator,
)

__all__ = [
    "FieldValidator",
    "builtin_validators",
    "default_validators",
    "new_validator_registry",
    "register_validator",
]
