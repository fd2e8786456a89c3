"""Certificate utility functions for verifying certificates returned by Private CA."""

import base64

from cryptography import x509
from cryptography.exceptions import InvalidSignature

KEY_USAGE_OID = "2.5.29.15"


def deserialize_certificate(pem_data: str | bytes) -> x509.Certificate:
    """Deserialize certificate from PEM text or bytes."""
    if isinstance(pem_data, str):
        pem_data = pem_data.encode("ascii")
    return x509.load_pem_x509_certificate(pem_data)


def ca_key_usage() -> x509.KeyUsage:
    """KeyUsage with only keyCertSign and cRLSign set."""
    return x509.KeyUsage(
        digital_signature=False,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=True,
        crl_sign=True,
        encipher_only=False,
        decipher_only=False,
    )


def encode_key_usage(key_usage: x509.KeyUsage) -> str:
    """Return the base64 DER encoding of a KeyUsage extension value.

    Private CA custom extensions take the extension value as base64 DER,
    e.g. 'AwIBBg==' for keyCertSign + cRLSign.
    """
    return base64.b64encode(key_usage.public_bytes()).decode("ascii")


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def subject_attributes(name: x509.Name) -> list[tuple[str, str]]:
    """Flatten a Name into ordered (dotted OID, value) pairs."""
    return [(attr.oid.dotted_string, str(attr.value)) for attr in name]


def is_directly_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    """Verify cert's signature and issuer name against issuer.

    Returns True if issuer signed cert, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False


def has_ca_only_key_usage(cert: x509.Certificate) -> bool:
    """Return True if KeyUsage allows certificate and CRL signing only."""
    try:
        key_usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return False
    return (
        key_usage.key_cert_sign
        and key_usage.crl_sign
        and not key_usage.digital_signature
        and not key_usage.key_encipherment
    )


def extract_certificate_metadata(cert: x509.Certificate) -> dict[str, str]:
    """Extract serial number and validity window for provisioning outputs."""
    return {
        "serialNumber": get_certificate_serial_hex(cert),
        "notBefore": cert.not_valid_before_utc.isoformat(),
        "notAfter": cert.not_valid_after_utc.isoformat(),
    }
