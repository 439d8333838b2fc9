"""
Password handling for password-protected shares.
"""
import bcrypt


def hash_share_password(password: str) -> str:
    """
    Hash a share password with bcrypt.

    Args:
        password: Plain text password chosen by the uploader

    Returns:
        bcrypt hash as a UTF-8 string
    """
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_share_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a viewer-supplied password against a stored share hash.

    Returns:
        True if password matches, False otherwise
    """
    if not plain_password or not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
