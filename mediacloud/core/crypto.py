"""
凭据加密

AES-256-GCM，密文格式: iv:tag:ciphertext（十六进制，冒号分隔）
"""
import hashlib
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import CloudStorageError

logger = logging.getLogger(__name__)

IV_SIZE = 12
TAG_SIZE = 16


def _derive_key(secret: Optional[str]) -> bytes:
    if not secret:
        raise CloudStorageError(
            "Encryption requires DATA_ENCRYPTION_KEY or AUTH_SECRET to be set"
        )
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt(text: str, secret: Optional[str]) -> str:
    """加密字符串"""
    key = _derive_key(secret)
    iv = os.urandom(IV_SIZE)
    sealed = AESGCM(key).encrypt(iv, text.encode("utf-8"), None)
    # cryptography 把 tag 附在密文末尾
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def is_encrypted(text: Optional[str]) -> bool:
    """是否符合密文格式"""
    if not text or text.count(":") != 2:
        return False
    iv_hex, tag_hex, _ = text.split(":")
    return len(iv_hex) == IV_SIZE * 2 and len(tag_hex) == TAG_SIZE * 2


def decrypt(text: Optional[str], secret: Optional[str]) -> Optional[str]:
    """解密字符串

    不是密文格式或解密失败时原样返回（兼容旧的明文记录）
    """
    if not is_encrypted(text):
        return text

    iv_hex, tag_hex, body_hex = text.split(":")
    try:
        key = _derive_key(secret)
        sealed = bytes.fromhex(body_hex) + bytes.fromhex(tag_hex)
        return AESGCM(key).decrypt(bytes.fromhex(iv_hex), sealed, None).decode("utf-8")
    except (InvalidTag, ValueError, CloudStorageError) as e:
        logger.warning(f"Decryption failed, returning stored value as is: {e}")
        return text
