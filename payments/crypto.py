"""AES helpers for the CCAvenue encrypted-redirect protocol.

CCAvenue keys AES-128-CBC with the MD5 digest of the merchant's working key
and a fixed IV of bytes 0x00..0x0F. Ciphertext travels hex-encoded.
"""

import hashlib

from Crypto.Cipher import AES
from Crypto.Util.Padding import pad, unpad

IV = bytes(range(16))


def _key(working_key: str) -> bytes:
    if not working_key:
        raise ValueError("working key must not be empty")
    return hashlib.md5(working_key.encode()).digest()


def encrypt(plain: str, working_key: str) -> str:
    cipher = AES.new(_key(working_key), AES.MODE_CBC, iv=IV)
    enc = cipher.encrypt(pad(plain.encode("utf-8"), AES.block_size))
    return enc.hex()


def decrypt(cipher_text: str, working_key: str) -> str:
    """Reverse :func:`encrypt`.

    Raises ``ValueError`` for malformed hex, bad padding (usually a wrong
    key) or plaintext that is not UTF-8.
    """
    cipher = AES.new(_key(working_key), AES.MODE_CBC, iv=IV)
    data = bytes.fromhex((cipher_text or "").strip())
    if not data or len(data) % AES.block_size:
        raise ValueError("ciphertext length is not a multiple of the block size")
    return unpad(cipher.decrypt(data), AES.block_size).decode("utf-8")
