"""
OAuth state 签名工具

state 携带用户 ID 往返提供商授权页，回调时校验签名与时效
"""
import base64
import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

logger = logging.getLogger(__name__)

# state 有效期（秒）
STATE_TTL = 600

# 未配置密钥时使用进程内随机密钥（重启后未完成的授权失效）
_fallback_key: bytes = secrets.token_bytes(32)


def _key(secret: Optional[str]) -> bytes:
    if not secret:
        return _fallback_key
    return hashlib.sha256(f"oauth-state:{secret}".encode("utf-8")).digest()


def _sign(payload: str, secret: Optional[str]) -> str:
    digest = hmac.new(_key(secret), payload.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def create_state(user_id: str, secret: Optional[str] = None) -> str:
    """生成 state: base64(user_id:issued_at:nonce).signature"""
    raw = f"{user_id}:{int(time.time())}:{secrets.token_hex(8)}"
    payload = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{payload}.{_sign(payload, secret)}"


def verify_state(state: Optional[str], secret: Optional[str] = None) -> Optional[str]:
    """
    校验 state

    Returns:
        state 中的用户 ID，签名错误、格式错误或已过期时返回 None
    """
    if not state or "." not in state:
        return None

    payload, signature = state.rsplit(".", 1)
    if not hmac.compare_digest(signature, _sign(payload, secret)):
        logger.warning("OAuth state signature mismatch")
        return None

    try:
        padded = payload + "=" * (-len(payload) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        user_id, issued_at, _ = raw.rsplit(":", 2)
        issued_at = int(issued_at)
    except ValueError:
        return None

    if time.time() - issued_at > STATE_TTL:
        logger.info(f"OAuth state for user {user_id} expired")
        return None
    return user_id
