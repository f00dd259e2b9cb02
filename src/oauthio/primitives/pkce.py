"""PKCE (Proof Key for Code Exchange) primitives.

Implements RFC 7636 code verifier generation and parsing, and the derivation
of the code challenge sent with the authorization request. The verifier binds
the authorization request to the later token request, preventing
authorization code interception attacks.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import string
from dataclasses import dataclass, field
from enum import Enum

from pydantic import SecretBytes

from oauthio.models.errors import InvalidPkceCharacter

logger = logging.getLogger(__name__)

# unreserved = ALPHA / DIGIT / "-" / "." / "_" / "~"
UNRESERVED = (string.ascii_letters + string.digits + "-._~").encode("ascii")

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128


class PkceCodeChallengeMethod(str, Enum):
    """Transformation applied to the verifier to obtain the challenge."""

    PLAIN = "plain"
    S256 = "S256"


class PkceCodeVerifier(SecretBytes):
    """High-entropy secret kept by the client between the two grant requests.

    RFC 7636 Section 4.1:

        code-verifier = 43*128unreserved

    The raw bytes are only reachable through ``get_secret_value()``.
    """

    @classmethod
    def new(cls, length: int = MIN_VERIFIER_LENGTH) -> PkceCodeVerifier:
        """Generate a verifier of ``length`` characters, clamped to [43, 128]."""
        length = max(MIN_VERIFIER_LENGTH, min(MAX_VERIFIER_LENGTH, length))
        return cls(bytes(secrets.choice(UNRESERVED) for _ in range(length)))

    @classmethod
    def default(cls) -> PkceCodeVerifier:
        return cls.new(MIN_VERIFIER_LENGTH)

    @classmethod
    def parse(cls, text: str | bytes) -> PkceCodeVerifier:
        """Wrap an existing verifier after checking its alphabet.

        Raises:
            InvalidPkceCharacter: On the first byte outside the unreserved set
        """
        data = text.encode("utf-8") if isinstance(text, str) else bytes(text)

        for byte in data:
            if byte not in UNRESERVED:
                logger.debug(f"Invalid byte 0x{byte:02x} found in PKCE code verifier")
                raise InvalidPkceCharacter(byte)

        return cls(data)


@dataclass(frozen=True)
class PkceCodeChallenge:
    """Code challenge derived from a verifier.

    ``S256`` is the default and the method to use. ``plain`` sends the
    verifier itself and only exists for servers that cannot do S256; it gives
    no protection if the authorization request leaks.
    """

    verifier: PkceCodeVerifier = field(default_factory=PkceCodeVerifier.default)
    method: PkceCodeChallengeMethod = PkceCodeChallengeMethod.S256

    @classmethod
    def generate(
        cls,
        method: PkceCodeChallengeMethod = PkceCodeChallengeMethod.S256,
        length: int = MIN_VERIFIER_LENGTH,
    ) -> PkceCodeChallenge:
        """Generate a fresh verifier and wrap it in a challenge."""
        return cls(verifier=PkceCodeVerifier.new(length), method=method)

    def encode(self) -> str:
        """Return the challenge as sent in the ``code_challenge`` parameter.

        RFC 7636 Section 4.2:

            plain: code_challenge = code_verifier
            S256:  code_challenge = BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
        """
        verifier = self.verifier.get_secret_value()

        if self.method is PkceCodeChallengeMethod.PLAIN:
            return verifier.decode("ascii", errors="replace")

        digest = hashlib.sha256(verifier).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
