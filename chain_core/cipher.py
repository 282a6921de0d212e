"""
AEAD for single chain chunks.

Encrypted chunk = NONCE || CIPHERTEXT || TAG, with a fixed AAD label binding
the ciphertext to this chunk format. Two suites:

- AES-256-GCM (12-byte nonce) via `cryptography` (default)
- XChaCha20-Poly1305 IETF (24-byte nonce) via PyNaCl

The cipher never wipes the key it is given; the caller owns that buffer and
must zero it right after the call (see ChainWalker).
"""

from __future__ import annotations

import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from .config import AES_GCM, DEFAULT_CIPHER, KEY_SIZE, XCHACHA, normalize_cipher
from .errors import AuthenticationFailed
from .header import Chunk, pack_plaintext, parse_plaintext
from .secure_bytes import secure_memzero

AAD = b"chain-chunk/v1"
TAG_SIZE = 16

NONCE_SIZES = {
    AES_GCM: 12,
    XCHACHA: 24,
}


class ChunkCipher:
    """Decrypts (and, for producers, encrypts) chain chunks with one suite."""

    def __init__(self, suite: str = DEFAULT_CIPHER):
        self.suite = normalize_cipher(suite)
        self.nonce_size = NONCE_SIZES[self.suite]

    def __repr__(self) -> str:
        return f"ChunkCipher({self.suite!r})"

    @staticmethod
    def _check_key(key: bytes | bytearray) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")

    # ------------------------------------------------------------------
    def _open(self, nonce: bytes, sealed: bytes, key: bytes | bytearray) -> bytes:
        if self.suite == AES_GCM:
            try:
                return AESGCM(key).decrypt(nonce, sealed, AAD)
            except InvalidTag as exc:
                raise AuthenticationFailed("Chunk authentication failed (wrong key or corrupted data)") from exc
        try:
            # PyNaCl only takes immutable bytes for the key
            return crypto_aead_xchacha20poly1305_ietf_decrypt(sealed, AAD, nonce, bytes(key))
        except CryptoError as exc:
            raise AuthenticationFailed("Chunk authentication failed (wrong key or corrupted data)") from exc

    def _seal(self, nonce: bytes, plain: bytes | bytearray, key: bytes | bytearray) -> bytes:
        if self.suite == AES_GCM:
            return AESGCM(key).encrypt(nonce, bytes(plain), AAD)
        return crypto_aead_xchacha20poly1305_ietf_encrypt(bytes(plain), AAD, nonce, bytes(key))

    # ------------------------------------------------------------------
    def decrypt(self, encrypted: bytes, key: bytes | bytearray) -> Chunk:
        """
        Authenticate and decrypt one encrypted chunk.

        Raises:
            AuthenticationFailed: wrong key, tampering or truncation
            MalformedHeader: authenticated plaintext does not parse
        """
        self._check_key(key)
        if len(encrypted) < self.nonce_size + TAG_SIZE:
            raise AuthenticationFailed(
                f"Encrypted chunk truncated: {len(encrypted)} bytes"
            )
        nonce = bytes(encrypted[: self.nonce_size])
        sealed = bytes(encrypted[self.nonce_size :])
        plain = self._open(nonce, sealed, key)
        return parse_plaintext(plain)

    def encrypt(
        self,
        payload: bytes,
        key: bytes | bytearray,
        *,
        next_address: bytes | None = None,
        next_key: bytes | bytearray | None = None,
        padding: int = 0,
        is_last: bool = False,
    ) -> bytes:
        """Build and seal one chunk. Used by chain producers and tests."""
        self._check_key(key)
        plain = pack_plaintext(
            payload,
            next_address=next_address,
            next_key=next_key,
            padding=padding,
            is_last=is_last,
        )
        try:
            nonce = secrets.token_bytes(self.nonce_size)
            return nonce + self._seal(nonce, plain, key)
        finally:
            # plaintext carries the neighbour key
            secure_memzero(plain)


__all__ = ["ChunkCipher", "AAD", "TAG_SIZE", "NONCE_SIZES"]
