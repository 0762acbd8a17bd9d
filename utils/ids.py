import secrets
import string
import time

_ALPHABET = string.ascii_letters + string.digits


def new_document_id(length: int = 20) -> str:
    """Random alphanumeric id in the style of hosted document stores."""
    return ''.join(secrets.choice(_ALPHABET) for _ in range(length))


def create_id_with_prefix(prefix: str) -> str:
    # timestamp + 4 random chars
    stamp = int(time.time() * 1000)
    rand = ''.join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(4))
    return f"{prefix}_{stamp}_{rand}"
