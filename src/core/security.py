"""Hash de contraseñas.

Por qué PBKDF2 de la stdlib:
- Las contraseñas nunca se guardan en texto plano en el snapshot.
- `hashlib.pbkdf2_hmac` + sal aleatoria es suficiente para una app local.

Formato: `pbkdf2_sha256$<iteraciones>$<sal hex>$<hash hex>`.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

_ALGORITHM = "pbkdf2_sha256"
_ITERATIONS = 240_000


def hash_password(password: str, *, salt: str | None = None, iterations: int = _ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), iterations)
    return f"{_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Comprueba `password` contra un hash generado por `hash_password`."""

    parts = encoded.split("$")
    if len(parts) != 4 or parts[0] != _ALGORITHM:
        return False
    _, iterations_s, salt, expected = parts
    try:
        iterations = int(iterations_s)
        candidate = hash_password(password, salt=salt, iterations=iterations)
    except ValueError:
        return False
    return hmac.compare_digest(candidate.split("$")[3], expected)
