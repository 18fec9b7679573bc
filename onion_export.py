"""
Writes a found key as a Tor hidden service directory.
"""
import os

from cryptography.hazmat.primitives import serialization

PRIVATE_KEY_FILENAME = "private_key"
HOSTNAME_FILENAME = "hostname"


def output_directory(pattern, service_id, base_dir="."):
    """Directory named after the pattern, or the service ID for an empty pattern."""
    return os.path.join(base_dir, pattern or service_id)


def export_private_key(private_key, service_id, directory):
    """Saves the private key and hostname with secure permissions."""
    # Fails with FileExistsError rather than overwriting an older key
    os.mkdir(directory, 0o700)

    priv_filename = os.path.join(directory, PRIVATE_KEY_FILENAME)
    host_filename = os.path.join(directory, HOSTNAME_FILENAME)

    # Tor expects "BEGIN RSA PRIVATE KEY", i.e. PKCS#1
    priv_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption()
    )

    # Write Private Key with restrictive permissions (600)
    fd = os.open(priv_filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'wb') as f:
        f.write(priv_bytes)

    with open(host_filename, "w") as f:
        f.write(f"{service_id}.onion\n")

    return priv_filename, host_filename
