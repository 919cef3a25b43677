from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from licensekit import __version__
from licensekit.config import LicenseKitConfig, build_canonicalizer_registry, load_config
from licensekit.core.canonicalization.registry import canonicalizer_for_path, canonicalizer_type
from licensekit.core.creator import attach_file_hashes, create_license
from licensekit.core.errors import (
    FieldRejectedError,
    InvalidInputError,
    LicenseKitError,
    LicenseValidationError,
    MissingFileError,
)
from licensekit.core.hashing import hash_file_for_extension, read_text, sha256_file
from licensekit.core.schema.loader import load_schema, schema_to_json, schema_to_yaml
from licensekit.core.serialization.license_serializer import from_json, signing_exclusions, to_json
from licensekit.core.validation.schema_validator import validate_document
from licensekit.signing import RsaSigner, RsaVerifier, generate_rsa_keypair, sign_document, verify_document

log = logging.getLogger("licensekit.cli")

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_INVALID = 3


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))


def _read_json_object(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    try:
        data = json.loads(p.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"{path} is not valid JSON: {e}") from None
    if not isinstance(data, dict):
        raise InvalidInputError(f"{path} must contain a JSON object")
    return data


def _read_license(path: str):
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    return from_json(p.read_text(encoding="utf-8-sig"))


def _write_or_print(text: str, out: Optional[str]) -> None:
    if out:
        Path(out).parent.mkdir(parents=True, exist_ok=True)
        Path(out).write_text(text + ("" if text.endswith("\n") else "\n"), encoding="utf-8")
        print(f"wrote {os.path.abspath(out)}")
    else:
        print(text)


def _parse_params(items: Optional[List[str]]) -> Dict[str, Any]:
    """``KEY=VALUE`` pairs; ``FIELD.KEY=VALUE`` scopes a parameter to one field."""
    params: Dict[str, Any] = {}
    for item in items or []:
        if "=" not in item:
            raise InvalidInputError(f"Parameter '{item}' must look like KEY=VALUE")
        key, value = item.split("=", 1)
        if "." in key:
            field_name, sub_key = key.split(".", 1)
            scoped = params.setdefault(field_name, {})
            if not isinstance(scoped, dict):
                raise InvalidInputError(f"Parameter '{field_name}' is both shared and field-scoped")
            scoped[sub_key] = value
        else:
            params[key] = value
    return params


def _exclusions(args: argparse.Namespace) -> List[str]:
    excluded = list(getattr(args, "exclude", None) or [])
    if getattr(args, "schema", None):
        excluded.extend(signing_exclusions(load_schema(args.schema)))
    return excluded


def cmd_schema_show(args: argparse.Namespace) -> int:
    """Print a schema as a summary, JSON or YAML."""
    schema = load_schema(args.schema)
    if args.format == "json":
        print(schema_to_json(schema))
    elif args.format == "yaml":
        print(schema_to_yaml(schema), end="")
    else:
        print(schema.summary())
    return EXIT_OK


def cmd_schema_check(args: argparse.Namespace) -> int:
    """Load a schema; loading runs the full definition check."""
    schema = load_schema(args.schema)
    print(f"OK: schema '{schema.name}' with {len(schema.fields)} field(s)")
    return EXIT_OK


def cmd_canonicalize(args: argparse.Namespace) -> int:
    cfg: LicenseKitConfig = args.config
    encoding = args.encoding or cfg.encoding
    if args.canonicalizer:
        canonicalizer = canonicalizer_type(args.canonicalizer)()
    else:
        canonicalizer = canonicalizer_for_path(args.path, build_canonicalizer_registry(cfg))
        if canonicalizer is None:
            raise InvalidInputError(
                f"No canonicalizer registered for '{Path(args.path).suffix}'; use --canonicalizer"
            )
    text = canonicalizer.canonicalize(read_text(args.path, encoding))
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8", newline="")
        print(f"wrote {os.path.abspath(args.out)}")
    else:
        sys.stdout.write(text)
    return EXIT_OK


def cmd_hash(args: argparse.Namespace) -> int:
    """Print path -> SHA-256 for each file.

    With --canonicalize, files whose extension has a canonicalizer are hashed
    in canonical form; everything else is hashed as raw bytes.
    """
    cfg: LicenseKitConfig = args.config
    encoding = args.encoding or cfg.encoding
    registry = build_canonicalizer_registry(cfg) if args.canonicalize else None
    out: Dict[str, str] = {}
    for path in args.paths:
        if registry is not None:
            out[path] = hash_file_for_extension(path, registry, encoding)
        else:
            out[path] = sha256_file(path)
    _print_json(out)
    return EXIT_OK


def cmd_create(args: argparse.Namespace) -> int:
    """Create a license from a schema and a JSON input file."""
    cfg: LicenseKitConfig = args.config
    schema = load_schema(args.schema)
    raw = _read_json_object(args.input) if args.input else {}
    registry = build_canonicalizer_registry(cfg)
    workdir = args.workdir or (os.path.dirname(os.path.abspath(args.input)) if args.input else None)

    document = create_license(
        schema,
        raw,
        working_directory=workdir,
        parameters=_parse_params(args.param),
        canonicalizers=registry,
        encoding=cfg.encoding,
    )
    if args.hash_file:
        attach_file_hashes(
            document,
            args.hash_file,
            field_name=args.hash_field,
            canonicalizers=registry if args.canonicalize else None,
            encoding=cfg.encoding,
        )

    report = validate_document(document, schema)
    if not report.ok:
        raise LicenseValidationError(report.errors)

    if args.key:
        signer = RsaSigner.from_file(args.key, padding=args.padding or cfg.rsa_padding)
        sign_document(document, signer, signing_exclusions(schema))

    log.info("created license %s", document.license_id)
    _write_or_print(to_json(document, validate=True), args.out)
    return EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a license file against a schema."""
    schema = load_schema(args.schema)
    document = _read_license(args.license)
    report = validate_document(document, schema)
    _print_json(report.to_dict())
    return EXIT_OK if report.ok else EXIT_INVALID


def cmd_keygen(args: argparse.Namespace) -> int:
    """Generate an RSA keypair for signing licenses.

    Security notes:
    - Store the private key securely. Anyone with it can issue licenses.
    """
    cfg: LicenseKitConfig = args.config
    out_dir = os.path.abspath(args.out_dir)
    kp = generate_rsa_keypair(out_dir, prefix=args.prefix, key_size=args.key_size or cfg.key_size)
    _print_json({"private_key": kp.private_key_path, "public_key": kp.public_key_path})
    return EXIT_OK


def cmd_sign(args: argparse.Namespace) -> int:
    cfg: LicenseKitConfig = args.config
    document = _read_license(args.license)
    signer = RsaSigner.from_file(args.key, padding=args.padding or cfg.rsa_padding)
    sign_document(document, signer, _exclusions(args))
    _write_or_print(to_json(document, validate=True), args.out or args.license)
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    cfg: LicenseKitConfig = args.config
    document = _read_license(args.license)
    verifier = RsaVerifier.from_file(args.pubkey, padding=args.padding or cfg.rsa_padding)
    ok, reason = verify_document(document, verifier, _exclusions(args))
    _print_json({"ok": ok, "reason": reason, "license_id": document.license_id})
    return EXIT_OK if ok else EXIT_INVALID


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="licensekit", description="licensekit CLI")
    p.add_argument("--version", action="version", version=f"licensekit {__version__}")
    p.add_argument("--log-level", default=None, help="Override LICENSEKIT_LOG_LEVEL")
    sub = p.add_subparsers(dest="cmd", required=True)

    ss = sub.add_parser("schema-show", help="Print a schema")
    ss.add_argument("schema", help="Schema file (.json/.yml/.yaml)")
    ss.add_argument("--format", choices=["text", "json", "yaml"], default="text")
    ss.set_defaults(func=cmd_schema_show)

    sc = sub.add_parser("schema-check", help="Check a schema definition")
    sc.add_argument("schema", help="Schema file (.json/.yml/.yaml)")
    sc.set_defaults(func=cmd_schema_check)

    cp = sub.add_parser("canonicalize", help="Print the canonical form of a text file")
    cp.add_argument("path", help="File to canonicalize")
    cp.add_argument("--canonicalizer", default=None, help="Canonicalizer id (text, inp); default by extension")
    cp.add_argument("--encoding", default=None, help="Text encoding (default from config)")
    cp.add_argument("--out", default=None, help="Write to file instead of stdout")
    cp.set_defaults(func=cmd_canonicalize)

    hp = sub.add_parser("hash", help="SHA-256 of one or more files")
    hp.add_argument("paths", nargs="+", help="Files to hash")
    hp.add_argument("--canonicalize", action="store_true", help="Hash canonical text where supported")
    hp.add_argument("--encoding", default=None, help="Text encoding (default from config)")
    hp.set_defaults(func=cmd_hash)

    cr = sub.add_parser("create", help="Create a license from a schema")
    cr.add_argument("--schema", required=True, help="Schema file")
    cr.add_argument("--input", default=None, help="JSON object with raw field values")
    cr.add_argument("--workdir", default=None, help="Base directory for relative paths")
    cr.add_argument(
        "--param",
        action="append",
        default=None,
        help="Processor parameter KEY=VALUE or FIELD.KEY=VALUE (repeatable)",
    )
    cr.add_argument("--hash-file", action="append", default=None, help="File to hash into the license (repeatable)")
    cr.add_argument("--hash-field", default="AllowedFileHashes", help="Field that receives --hash-file digests")
    cr.add_argument("--canonicalize", action="store_true", help="Canonicalize --hash-file inputs where supported")
    cr.add_argument("--key", default=None, help="Private key PEM; signs the license when given")
    cr.add_argument("--padding", default=None, choices=["pss", "pkcs1"], help="RSA padding")
    cr.add_argument("--out", default=None, help="Output license file (default: stdout)")
    cr.set_defaults(func=cmd_create)

    vp = sub.add_parser("validate", help="Validate a license against a schema")
    vp.add_argument("license", help="License JSON file")
    vp.add_argument("--schema", required=True, help="Schema file")
    vp.set_defaults(func=cmd_validate)

    kg = sub.add_parser("keygen", help="Generate an RSA keypair")
    kg.add_argument("--out-dir", default="keys", help="Output directory")
    kg.add_argument("--prefix", default="licensekit_rsa", help="Key file prefix")
    kg.add_argument("--key-size", type=int, default=None, help="RSA key size (default from config)")
    kg.set_defaults(func=cmd_keygen)

    sg = sub.add_parser("sign", help="Sign a license file")
    sg.add_argument("license", help="License JSON file")
    sg.add_argument("--key", required=True, help="Private key PEM")
    sg.add_argument("--schema", default=None, help="Schema; its unsigned fields are excluded")
    sg.add_argument("--exclude", action="append", default=None, help="Extra field to leave unsigned (repeatable)")
    sg.add_argument("--padding", default=None, choices=["pss", "pkcs1"], help="RSA padding")
    sg.add_argument("--out", default=None, help="Output file (default: overwrite input)")
    sg.set_defaults(func=cmd_sign)

    vf = sub.add_parser("verify", help="Verify a license signature")
    vf.add_argument("license", help="License JSON file")
    vf.add_argument("--pubkey", required=True, help="Public key PEM")
    vf.add_argument("--schema", default=None, help="Schema; its unsigned fields are excluded")
    vf.add_argument("--exclude", action="append", default=None, help="Extra unsigned field (repeatable)")
    vf.add_argument("--padding", default=None, choices=["pss", "pkcs1"], help="RSA padding")
    vf.set_defaults(func=cmd_verify)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = load_config()
    if args.log_level:
        cfg = replace(cfg, log_level=args.log_level.upper())
    logging.basicConfig(level=cfg.log_level_value, format="%(levelname)s %(name)s: %(message)s")
    args.config = cfg

    try:
        return int(args.func(args))
    except (LicenseValidationError, FieldRejectedError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID
    except (InvalidInputError, MissingFileError, LicenseKitError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    raise SystemExit(main())
