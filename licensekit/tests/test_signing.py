from pathlib import Path

import pytest

from licensekit.core.document import LicenseDocument
from licensekit.core.errors import InvalidInputError, MissingFileError
from licensekit.core.serialization import from_json, to_json
from licensekit.signing import (
    SIGNATURE_MISMATCH,
    SIGNATURE_MISSING,
    SIGNATURE_NOT_BASE64,
    RsaSigner,
    RsaVerifier,
    generate_rsa_keypair,
    sign_document,
    verify_document,
)


@pytest.fixture(scope="module")
def keypair(tmp_path_factory):
    return generate_rsa_keypair(str(tmp_path_factory.mktemp("keys")), prefix="test")


def _document() -> LicenseDocument:
    doc = LicenseDocument()
    doc.set("LicenseId", "L1")
    doc.set("ExpiryUtc", "2030-01-01T00:00:00Z")
    doc.set("MaxUsers", 10)
    doc.set("Comment", "edit me")
    return doc


def test_keypair_files(keypair) -> None:
    assert Path(keypair.private_key_path).name == "test_private.pem"
    assert Path(keypair.public_key_path).read_text(encoding="ascii").startswith("-----BEGIN PUBLIC KEY-----")


def test_sign_then_verify(keypair) -> None:
    doc = _document()
    signature = sign_document(doc, RsaSigner.from_file(keypair.private_key_path))

    assert doc.signature == signature
    assert verify_document(doc, RsaVerifier.from_file(keypair.public_key_path)) == (True, None)


def test_verification_survives_json_round_trip(keypair) -> None:
    doc = _document()
    sign_document(doc, RsaSigner.from_file(keypair.private_key_path))

    reloaded = from_json(to_json(doc))
    assert verify_document(reloaded, RsaVerifier.from_file(keypair.public_key_path)) == (True, None)


def test_tampering_breaks_signature(keypair) -> None:
    doc = _document()
    sign_document(doc, RsaSigner.from_file(keypair.private_key_path))
    doc.set("MaxUsers", 1000)

    assert verify_document(doc, RsaVerifier.from_file(keypair.public_key_path)) == (False, SIGNATURE_MISMATCH)


def test_excluded_fields_may_change(keypair) -> None:
    doc = _document()
    sign_document(doc, RsaSigner.from_file(keypair.private_key_path), excluded_fields=["Comment"])
    doc.set("Comment", "edited")
    verifier = RsaVerifier.from_file(keypair.public_key_path)

    assert verify_document(doc, verifier, excluded_fields=["comment"]) == (True, None)
    assert verify_document(doc, verifier) == (False, SIGNATURE_MISMATCH)


def test_missing_and_malformed_signatures(keypair) -> None:
    verifier = RsaVerifier.from_file(keypair.public_key_path)
    doc = _document()

    assert verify_document(doc, verifier) == (False, SIGNATURE_MISSING)
    doc.set("Signature", "!!not base64!!")
    assert verify_document(doc, verifier) == (False, SIGNATURE_NOT_BASE64)
    assert verifier.verify(b"data", "!!not base64!!") is False


def test_pkcs1_padding(keypair) -> None:
    doc = _document()
    sign_document(doc, RsaSigner.from_file(keypair.private_key_path, padding="pkcs1"))

    assert verify_document(doc, RsaVerifier.from_file(keypair.public_key_path, padding="PKCS1")) == (True, None)
    assert verify_document(doc, RsaVerifier.from_file(keypair.public_key_path)) == (False, SIGNATURE_MISMATCH)


def test_failed_signing_restores_previous_signature() -> None:
    class BrokenSigner:
        def sign(self, data: bytes) -> str:
            raise RuntimeError("hsm offline")

    doc = _document()
    doc.set("Signature", "b2xk")

    with pytest.raises(RuntimeError):
        sign_document(doc, BrokenSigner())
    assert doc.signature == "b2xk"


def test_bad_keys_and_options(tmp_path: Path, keypair) -> None:
    with pytest.raises(InvalidInputError):
        RsaSigner.from_file(keypair.private_key_path, padding="oaep")
    with pytest.raises(InvalidInputError):
        RsaSigner("not a pem")
    with pytest.raises(InvalidInputError):
        RsaVerifier(Path(keypair.private_key_path).read_bytes())
    with pytest.raises(MissingFileError):
        RsaVerifier.from_file(str(tmp_path / "none.pem"))
    with pytest.raises(InvalidInputError):
        generate_rsa_keypair(str(tmp_path), key_size=1024)
