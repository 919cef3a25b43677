from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey, generate_private_key

from licensekit.core.document import LicenseDocument
from licensekit.core.errors import InvalidInputError, MissingFileError
from licensekit.core.serialization.license_serializer import SIGNATURE_FIELD, canonical_bytes

log = logging.getLogger("licensekit.signing")

PADDINGS = ("pss", "pkcs1")

SIGNATURE_MISSING = "Signature missing or empty"
SIGNATURE_NOT_BASE64 = "Signature is not valid Base64"
SIGNATURE_MISMATCH = "Signature verification failed"


@dataclass(frozen=True)
class KeyPairPaths:
    """Generated key locations."""

    private_key_path: str
    public_key_path: str


def _check_padding(name: str) -> str:
    p = (name or "").strip().lower()
    if p not in PADDINGS:
        raise InvalidInputError(f"Unsupported RSA padding '{name}'. Use one of: {', '.join(PADDINGS)}")
    return p


def _padding(name: str) -> asym_padding.AsymmetricPadding:
    # salt length = digest length (32 bytes for SHA-256)
    if name == "pss":
        return asym_padding.PSS(mgf=asym_padding.MGF1(hashes.SHA256()), salt_length=32)
    return asym_padding.PKCS1v15()


def _read_key_file(path: str) -> bytes:
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    return p.read_bytes()


def _pem_bytes(pem: Union[str, bytes]) -> bytes:
    if isinstance(pem, str):
        return pem.encode("ascii")
    return bytes(pem)


def generate_rsa_keypair(out_dir: str, prefix: str = "licensekit_rsa", key_size: int = 2048) -> KeyPairPaths:
    """Generate an RSA keypair on disk (PKCS8 private / SPKI public, PEM).

    Security notes:
    - the private key is written unencrypted; protect it with file permissions
    """

    if key_size < 2048:
        raise InvalidInputError("RSA key size must be at least 2048 bits")
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    priv = generate_private_key(public_exponent=65537, key_size=key_size)
    pub = priv.public_key()

    priv_path = out / f"{prefix}_private.pem"
    pub_path = out / f"{prefix}_public.pem"

    priv_path.write_bytes(
        priv.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    pub_path.write_bytes(
        pub.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    log.info("wrote RSA-%d keypair to %s", key_size, out)
    return KeyPairPaths(private_key_path=str(priv_path), public_key_path=str(pub_path))


class RsaSigner:
    """Signs bytes with an RSA private key (SHA-256, PSS or PKCS#1 v1.5)."""

    def __init__(self, private_pem: Union[str, bytes], padding: str = "pss") -> None:
        self.padding = _check_padding(padding)
        try:
            key = serialization.load_pem_private_key(_pem_bytes(private_pem), password=None)
        except (ValueError, TypeError) as e:
            raise InvalidInputError(f"Could not load RSA private key: {e}") from None
        if not isinstance(key, RSAPrivateKey):
            raise InvalidInputError("not an RSA private key")
        self._key = key

    @classmethod
    def from_file(cls, path: str, padding: str = "pss") -> "RsaSigner":
        return cls(_read_key_file(path), padding=padding)

    def sign(self, data: bytes) -> str:
        """Return the base64 signature of ``data``."""
        sig = self._key.sign(data, _padding(self.padding), hashes.SHA256())
        return base64.b64encode(sig).decode("ascii")


class RsaVerifier:
    """Verifies base64 RSA signatures; never raises on malformed signatures."""

    def __init__(self, public_pem: Union[str, bytes], padding: str = "pss") -> None:
        self.padding = _check_padding(padding)
        try:
            key = serialization.load_pem_public_key(_pem_bytes(public_pem))
        except (ValueError, TypeError) as e:
            raise InvalidInputError(f"Could not load RSA public key: {e}") from None
        if not isinstance(key, RSAPublicKey):
            raise InvalidInputError("not an RSA public key")
        self._key = key

    @classmethod
    def from_file(cls, path: str, padding: str = "pss") -> "RsaVerifier":
        return cls(_read_key_file(path), padding=padding)

    def verify(self, data: bytes, signature: str) -> bool:
        sig = decode_signature(signature)
        if sig is None:
            return False
        try:
            self._key.verify(sig, data, _padding(self.padding), hashes.SHA256())
            return True
        except InvalidSignature:
            return False


def decode_signature(signature: Optional[str]) -> Optional[bytes]:
    if not isinstance(signature, str) or not signature:
        return None
    try:
        return base64.b64decode(signature.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        return None


def sign_document(
    document: LicenseDocument,
    signer: RsaSigner,
    excluded_fields: Iterable[str] = (),
) -> str:
    """Sign the canonical bytes of ``document`` and store the signature.

    The signature field is cleared while signing; on any failure the previous
    signature is put back before the error propagates.
    """

    excluded = list(excluded_fields)
    previous = document.get(SIGNATURE_FIELD)
    document.set(SIGNATURE_FIELD, None)
    try:
        signature = signer.sign(canonical_bytes(document, excluded))
        document.set(SIGNATURE_FIELD, signature)
    except Exception:
        document.set(SIGNATURE_FIELD, previous)
        raise
    log.info("signed license %s", document.license_id)
    return signature


def verify_document(
    document: LicenseDocument,
    verifier: RsaVerifier,
    excluded_fields: Iterable[str] = (),
) -> Tuple[bool, Optional[str]]:
    """Check the stored signature against the canonical bytes.

    Returns (ok, reason); reason is None when the signature is valid.
    """

    signature = document.get(SIGNATURE_FIELD)
    if not isinstance(signature, str) or not signature:
        return False, SIGNATURE_MISSING
    if decode_signature(signature) is None:
        return False, SIGNATURE_NOT_BASE64
    if not verifier.verify(canonical_bytes(document, list(excluded_fields)), signature):
        return False, SIGNATURE_MISMATCH
    return True, None
