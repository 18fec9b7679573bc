"""
Hidden service (v2 .onion) address derivation.

The service ID is the first 10 bytes of the SHA-1 digest of the DER encoded
RSA public key (PKCS#1 RSAPublicKey, as written by OpenSSL's
i2d_RSAPublicKey), base32 encoded into 16 lowercase characters.
"""
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Key parameters used by Tor for hidden service keys
KEY_SIZE = 1024
PUBLIC_EXPONENT = 3

DIGEST_LEN = 20

# Digest bytes kept, and the length of the "x" part in "x.onion"
SERVICE_ID_LEN = 10
SERVICE_ID_LEN_BASE32 = 16

BASE32_CHARS = "abcdefghijklmnopqrstuvwxyz234567"


class KeyGenerationError(RuntimeError):
    """The RSA key generation primitive failed."""


class DigestError(RuntimeError):
    """The digest primitive failed or returned a malformed digest."""


def base32_encode(src, output_len=None):
    """
    Encode `src` with the lowercase base32 alphabet, MSB first, no padding.

    The bit length of `src` has to be a multiple of 5. Both checks guard
    against internal misuse, so they raise instead of returning a value.
    """
    nbits = len(src) * 8
    if nbits % 5 != 0:
        raise ValueError(f"bit length {nbits} is not a multiple of 5")
    if output_len is not None and output_len < nbits // 5:
        raise ValueError(f"output length {output_len} too small for {nbits // 5} characters")

    chars = []
    for bit in range(0, nbits, 5):
        # 16-bit window starting at the byte that holds `bit`, 0-padded
        v = src[bit // 8] << 8
        if bit + 5 < nbits:
            v += src[bit // 8 + 1]
        chars.append(BASE32_CHARS[(v >> (11 - bit % 8)) & 0x1F])
    return "".join(chars)


def public_key_der(public_key):
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1
    )


def compute_digest(data):
    """SHA-1 of `data`. Primitive failures surface as DigestError."""
    try:
        h = hashes.Hash(hashes.SHA1())
        h.update(data)
        digest = h.finalize()
    except Exception as exc:
        raise DigestError(f"SHA-1 digest failed: {exc}") from exc

    if len(digest) != DIGEST_LEN:
        raise DigestError(f"expected a {DIGEST_LEN}-byte digest, got {len(digest)} bytes")
    return digest


def derive_service_id(public_key):
    """Returns the 16 character service ID for an RSA public key."""
    digest = compute_digest(public_key_der(public_key))
    return base32_encode(digest[:SERVICE_ID_LEN], SERVICE_ID_LEN_BASE32)


def generate_key():
    """Generates one candidate hidden service key."""
    try:
        return rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=KEY_SIZE
        )
    except Exception as exc:
        raise KeyGenerationError(f"RSA key generation failed: {exc}") from exc
