"""
Ed25519 verification of downloaded artifacts.

The public key is shipped with the package and is never taken from a manifest
or any other remote source.
"""

import io
import mmap
import os
from typing import BinaryIO

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

from enginemanager.enginemanager_exceptions import (
    ArtifactTooLargeError,
    EngineManagerException,
    FilesystemError,
)

# Hex-encoded raw Ed25519 public key of the build publisher.
# Placeholder: replace with the real publisher key at release, or ship a key
# file and point `EngineManagerConfig.public_key_path` at it.
ENGINE_MODULE_PUBLIC_KEY = "5e8c1a7f2d9b4c63a0f1e87d3b6c2945f0a8d17e6b3c5f2a9d4e81b07c6f3a25"

SIGNATURE_SIZE = 64

# Largest artifact that can be mapped for verification.
MAX_VERIFY_SIZE = 2**31 - 1


class SignatureVerifier:
    """
    Verifies artifacts against a fixed Ed25519 public key.
    """

    def __init__(self, public_key_hex: str = ENGINE_MODULE_PUBLIC_KEY):
        self._verify_key = VerifyKey(public_key_hex.encode("ascii"), encoder=HexEncoder)

    @classmethod
    def from_key_file(cls, path: str) -> "SignatureVerifier":
        """
        Create a verifier from a file holding the hex-encoded public key.

        Raises:
            FilesystemError: If the file cannot be read
            EngineManagerException: If the file does not hold a valid key
        """
        try:
            with open(path, "r", encoding="ascii") as f:
                key_hex = f.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            raise FilesystemError(f"Unable to read public key {path}: {e}") from e

        try:
            return cls(key_hex)
        except (ValueError, TypeError, CryptoError) as e:
            raise EngineManagerException(f"Invalid public key in {path}: {e}") from e

    def verify(self, stream: BinaryIO, signature_hex: str) -> bool:
        """
        Verify the entire content of `stream` against a hex signature.

        The stream is memory-mapped when it is backed by a file, which skips
        a separate read pass. PyNaCl still copies the whole message while
        verifying, so peak memory is about twice the artifact size.

        Returns:
            True if the signature is valid, False if it is malformed or does not match

        Raises:
            ArtifactTooLargeError: If the stream is larger than MAX_VERIFY_SIZE
        """
        try:
            signature = bytes.fromhex(signature_hex)
        except ValueError:
            return False

        if len(signature) != SIGNATURE_SIZE:
            return False

        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)

        if size > MAX_VERIFY_SIZE:
            raise ArtifactTooLargeError(f"Unable to verify artifacts larger than 2 GiB ({size} bytes)")

        try:
            fileno = stream.fileno()
        except (AttributeError, OSError, io.UnsupportedOperation):
            fileno = None

        if fileno is None or size == 0:
            return self._verify_bytes(stream.read(), signature)

        with mmap.mmap(fileno, size, access=mmap.ACCESS_READ) as mapped:
            return self._verify_bytes(mapped, signature)

    def verify_file(self, path: str, signature_hex: str) -> bool:
        with open(path, "rb") as f:
            return self.verify(f, signature_hex)

    def _verify_bytes(self, data, signature: bytes) -> bool:
        try:
            self._verify_key.verify(data, signature)
            return True
        except BadSignatureError:
            return False
