import logging

from passlib.context import CryptContext
from passlib.handlers import bcrypt as passlib_bcrypt

logging.getLogger("passlib.handlers.bcrypt").setLevel(logging.ERROR)


def _patch_bcrypt_backend() -> None:
    """Keep passlib working against bcrypt releases that reject >72 byte input."""
    backend = passlib_bcrypt._BcryptBackend
    if getattr(backend, "_boondit_verify_patch", False):
        return
    original_verify = backend.verify.__func__

    def verify_safe(cls, secret, hash, **context):
        try:
            return original_verify(cls, secret, hash, **context)
        except ValueError as exc:
            if "password cannot be longer than 72 bytes" in str(exc):
                return False
            raise

    backend.verify = classmethod(verify_safe)
    backend._boondit_verify_patch = True
    # skip the wraparound self-test that trips the same length check
    backend._workrounds_initialized = True


_patch_bcrypt_backend()

pwd_ctx = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8


def hash_password(plain: str) -> str:
    return pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    """Verify plain password against hash; OAuth-only accounts never match."""
    if not plain or not hashed:
        return False
    try:
        return pwd_ctx.verify(plain, hashed)
    except ValueError:
        return False
