"""Signed actor tokens for moderator commands."""
import base64
import binascii
import json
import time
from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa, padding

from .config import TOKEN_TTL_SECONDS
from .errors import AuthenticationError

KEY_SIZE = 2048


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _private_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


def _public_pem(key: rsa.RSAPublicKey) -> str:
    return key.public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


class ActorTokens:
    """Issue and verify RSA-signed tokens that carry a moderator identity."""

    @staticmethod
    def generate_signing_keys(key_size: int = KEY_SIZE) -> Tuple[str, str]:
        """Create the RSA pair moderator tokens are signed and checked with.

        The private PEM stays with whoever runs ``photogate token``; the
        public PEM is what every moderation command verifies against.

        Returns:
            Tuple of (public_key_pem, private_key_pem)
        """
        signer = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return _public_pem(signer.public_key()), _private_pem(signer)

    @staticmethod
    def issue(
        actor: str,
        private_key_pem: str,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        now: Optional[float] = None,
    ) -> str:
        """Sign a token for ``actor``.

        Args:
            actor: Moderator identity, e.g. an email
            private_key_pem: Private key in PEM format
            ttl_seconds: Lifetime of the token
            now: Issue time as a Unix timestamp (defaults to the current time)

        Returns:
            Token of the form ``<payload>.<signature>``
        """
        if not actor:
            raise ValueError("Actor must not be empty")

        issued_at = int(now if now is not None else time.time())
        payload = json.dumps(
            {"sub": actor, "iat": issued_at, "exp": issued_at + ttl_seconds},
            sort_keys=True,
            separators=(',', ':'),
        ).encode()

        private_key = serialization.load_pem_private_key(
            private_key_pem.encode(),
            password=None
        )
        signature = private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
        return f"{_b64encode(payload)}.{_b64encode(signature)}"

    @staticmethod
    def verify(token: str, public_key_pem: str, now: Optional[float] = None) -> str:
        """Check a token and return the actor it was issued to.

        Raises:
            AuthenticationError: malformed, forged or expired token
        """
        try:
            encoded_payload, encoded_signature = token.strip().split(".")
            payload = _b64decode(encoded_payload)
            signature = _b64decode(encoded_signature)
        except (AttributeError, ValueError, binascii.Error):
            raise AuthenticationError("Malformed token") from None

        try:
            public_key = serialization.load_pem_public_key(public_key_pem.encode())
        except ValueError as e:
            raise AuthenticationError(f"Invalid public key: {e}") from e

        try:
            public_key.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())
        except InvalidSignature:
            raise AuthenticationError("Invalid token signature") from None

        try:
            claims = json.loads(payload)
            actor = claims["sub"]
            expires_at = claims["exp"]
        except (ValueError, KeyError, TypeError):
            raise AuthenticationError("Malformed token payload") from None

        current = now if now is not None else time.time()
        if current >= expires_at:
            raise AuthenticationError("Token expired")
        return actor
