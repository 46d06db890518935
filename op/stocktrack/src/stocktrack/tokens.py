# tokens.py
import binascii
import enum
import time
from typing import Callable

import jwt
from jwt.algorithms import get_default_algorithms
from jwt.utils import base64url_decode

def now() -> int:
    return int(time.time())


class TokenFailure(str, enum.Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenError(Exception):
    def __init__(self, kind: TokenFailure, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class TokenService:
    """Issues and verifies HS256 session tokens.

    A token carries ``sub`` (user id), ``iat`` and ``exp``. It is valid while
    the signature matches the configured secret and ``exp`` has not passed;
    there is no revocation list.
    """

    def __init__(self, secret: str, ttl_seconds: int = 3600, algorithm: str = "HS256",
                 clock: Callable[[], int] = now) -> None:
        if not secret:
            raise ValueError("token signing secret is not configured")
        self._secret = secret
        self._ttl = ttl_seconds
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, subject_id: str) -> str:
        issued_at = self._clock()
        payload = {
            "sub": str(subject_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _check_signature(self, token: str) -> None:
        # over the raw "header.payload" text, before anything is decoded
        signing_input, dot, signature = token.rpartition(".")
        if not dot:
            raise TokenError(TokenFailure.MALFORMED, "not a signed token")
        algorithm = get_default_algorithms()[self._algorithm]
        try:
            raw_signature = base64url_decode(signature)
        except (binascii.Error, ValueError) as e:
            raise TokenError(TokenFailure.INVALID_SIGNATURE, "undecodable signature") from e
        key = algorithm.prepare_key(self._secret)
        if not algorithm.verify(signing_input.encode("utf-8"), key, raw_signature):
            raise TokenError(TokenFailure.INVALID_SIGNATURE, "signature mismatch")

    def verify(self, token: str) -> str:
        self._check_signature(token)
        # expiry is checked against our own clock below, not PyJWT's
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False,
                         "require": ["sub", "iat", "exp"]},
            )
        except jwt.InvalidSignatureError as e:
            raise TokenError(TokenFailure.INVALID_SIGNATURE, str(e)) from e
        except jwt.InvalidTokenError as e:
            raise TokenError(TokenFailure.MALFORMED, str(e)) from e

        exp = claims["exp"]
        if not isinstance(exp, int) or not claims["sub"]:
            raise TokenError(TokenFailure.MALFORMED, "bad claims")
        if self._clock() > exp:
            raise TokenError(TokenFailure.EXPIRED, f"expired at {exp}")
        return claims["sub"]
