"""Schema-driven license creation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from .canonicalization.base import Canonicalizer
from .document import LicenseDocument
from .errors import InvalidInputError
from .hashing import hash_file_for_extension, sha256_file
from .processing.context import ProcessorContext
from .processing.processors import FieldProcessor, default_processors
from .registry import Registry
from .schema.schema import FieldDescriptor, LicenseSchema
from .validation.field_validators import FieldValidator

log = logging.getLogger("licensekit.creator")

_MISSING = object()


def _lookup(raw: Mapping[str, Any], name: str) -> Any:
    if name in raw:
        return raw[name]
    folded = name.casefold()
    for key, value in raw.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return _MISSING


def _field_parameters(parameters: Mapping[str, Any], field_name: str) -> Mapping[str, Any]:
    """Per-field mapping when ``parameters[field_name]`` is one, else the shared mapping."""
    specific = _lookup(parameters, field_name)
    if isinstance(specific, Mapping):
        return specific
    return parameters


def create_license(
    schema: LicenseSchema,
    raw_input: Optional[Mapping[str, Any]] = None,
    working_directory: Optional[Union[str, Path]] = None,
    parameters: Optional[Mapping[str, Any]] = None,
    processors: Optional[Registry[FieldProcessor]] = None,
    validators: Optional[Registry[FieldValidator]] = None,
    canonicalizers: Optional[Registry[Canonicalizer]] = None,
    encoding: str = "utf-8",
) -> LicenseDocument:
    """Build a LicenseDocument from raw input, driven by ``schema``.

    For each schema field, in schema order:
    1) raw value (case-insensitive key) or the converted default
    2) the field's processor, if any
    3) a validated write; the first rejection raises FieldRejectedError

    Raw input keys the schema does not mention are written afterwards.
    Fields that end up null are left unset.
    """

    if schema is None:
        raise InvalidInputError("schema is required")
    raw = dict(raw_input or {})
    params = dict(parameters or {})
    procs = processors if processors is not None else default_processors()
    workdir = str(working_directory) if working_directory is not None else None

    document = LicenseDocument(validators=validators)
    log.info("creating license from schema '%s' (%d field(s))", schema.name, len(schema.fields))

    for fd in schema.fields:
        value = _lookup(raw, fd.name)
        if value is _MISSING:
            value = fd.converted_default()
        if fd.processor:
            value = _run_processor(fd, value, procs, params, workdir, canonicalizers, encoding)
        if value is None:
            log.debug("field '%s' has no value; leaving unset", fd.name)
            continue
        document.set(fd.name, value)

    for key, value in raw.items():
        if schema.get_field(key) is None:
            log.debug("writing field '%s' not described by schema", key)
            document.set(key, value)

    return document


def _run_processor(
    fd: FieldDescriptor,
    value: Any,
    processors: Registry[FieldProcessor],
    parameters: Mapping[str, Any],
    working_directory: Optional[str],
    canonicalizers: Optional[Registry[Canonicalizer]],
    encoding: str,
) -> Any:
    processor = processors.get(fd.processor)
    if processor is None:
        raise InvalidInputError(f"Unknown processor '{fd.processor}' for field '{fd.name}'")
    ctx = ProcessorContext(
        field_name=fd.name,
        descriptor=fd,
        parameters=_field_parameters(parameters, fd.name),
        working_directory=working_directory,
        canonicalizers=canonicalizers,
        encoding=encoding,
    )
    log.debug("running processor '%s' for field '%s'", fd.processor, fd.name)
    return processor(value, ctx)


def attach_file_hashes(
    document: LicenseDocument,
    paths: Iterable[Union[str, Path]],
    field_name: str = "AllowedFileHashes",
    canonicalizers: Optional[Registry[Canonicalizer]] = None,
    encoding: str = "utf-8",
) -> List[str]:
    """Hash each existing file and store the digests under ``field_name``.

    Files are hashed as raw bytes unless a canonicalizer registry is given.
    Missing files are logged and skipped. Nothing is written when no file
    could be hashed. Returns the digests in input order.
    """

    digests: List[str] = []
    for path in paths:
        p = Path(path)
        if not p.is_file():
            log.warning("input file could not be found at %s; skipping", p)
            continue
        if canonicalizers is None:
            digest = sha256_file(p)
        else:
            digest = hash_file_for_extension(p, canonicalizers, encoding)
        log.info("computed hash for file '%s': %s", p, digest)
        digests.append(digest)
    if digests:
        document.set(field_name, digests)
    return digests

