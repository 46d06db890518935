# security.py
import bcrypt

# checked against when the email is unknown so login timing stays flat
_DUMMY_HASH = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=4))

def _to_bytes(plain: str) -> bytes:
    # bcrypt only looks at the first 72 bytes and newer releases refuse more
    return plain.encode('utf-8')[:72]

def hash_password(plain: str, rounds: int = 12) -> str:
    password_bytes = _to_bytes(plain)
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode('utf-8')

def verify_password(plain: str, hashed: str | None) -> bool:
    password_bytes = _to_bytes(plain)
    if not hashed:
        bcrypt.checkpw(password_bytes, _DUMMY_HASH)
        return False
    return bcrypt.checkpw(password_bytes, hashed.encode('utf-8'))
