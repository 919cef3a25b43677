from .context import ProcessorContext
from .processors import (
    FieldProcessor,
    builtin_processors,
    default_processors,
    new_processor_registry,
    register_processor,
)

__all__ = [
    "FieldProcessor",
    "ProcessorContext",
    "builtin_processors",
    "default_processors",
    "new_processor_registry",
    "register_processor",
]
