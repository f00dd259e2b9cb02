"""Client configuration for the authorization code flow.

Values can be passed directly or read from the environment (and a ``.env``
file) with ``ClientConfig.from_env``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from oauthio.primitives.pkce import (
    MAX_VERIFIER_LENGTH,
    MIN_VERIFIER_LENGTH,
    PkceCodeChallengeMethod,
)
from oauthio.primitives.scope import normalize_scope

logger = logging.getLogger(__name__)


class ClientConfig(BaseModel):
    """Static settings of one OAuth client against one authorization server.

    ``pkce_method`` set to None turns PKCE off for every flow built from this
    configuration.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    authorization_endpoint: str = Field(min_length=1)
    token_endpoint: str = Field(min_length=1)
    redirect_uri: str | None = None
    scope: tuple[str, ...] = ()
    pkce_method: PkceCodeChallengeMethod | None = PkceCodeChallengeMethod.S256
    verifier_length: int = Field(
        default=MIN_VERIFIER_LENGTH, ge=MIN_VERIFIER_LENGTH, le=MAX_VERIFIER_LENGTH
    )
    use_state: bool = True

    @field_validator("scope", mode="before")
    @classmethod
    def validate_scope(cls, v: object) -> tuple[str, ...]:
        return normalize_scope(v)

    @field_validator("authorization_endpoint")
    @classmethod
    def validate_authorization_endpoint(cls, v: str) -> str:
        if "#" in v:
            raise ValueError("Authorization endpoint must not include a fragment")
        return v

    @classmethod
    def from_env(
        cls, prefix: str = "OAUTH_", load_env_file: bool = True
    ) -> ClientConfig:
        """Read the configuration from ``<prefix>``-prefixed environment variables.

        Recognized names: CLIENT_ID, AUTHORIZATION_URI, TOKEN_URI,
        REDIRECT_URI, SCOPE (space-delimited), PKCE_METHOD (``S256``,
        ``plain`` or ``none``) and VERIFIER_LENGTH.

        Raises:
            pydantic.ValidationError: If a required value is missing or invalid
        """
        if load_env_file:
            load_dotenv()

        def env(name: str) -> str | None:
            return os.getenv(f"{prefix}{name}")

        values: dict[str, object] = {
            "client_id": env("CLIENT_ID"),
            "authorization_endpoint": env("AUTHORIZATION_URI"),
            "token_endpoint": env("TOKEN_URI"),
            "redirect_uri": env("REDIRECT_URI"),
            "scope": env("SCOPE") or (),
        }

        pkce_method = env("PKCE_METHOD")
        if pkce_method is not None:
            values["pkce_method"] = (
                None if pkce_method.lower() == "none" else pkce_method
            )

        verifier_length = env("VERIFIER_LENGTH")
        if verifier_length is not None:
            values["verifier_length"] = verifier_length

        logger.debug(f"Loading client configuration from {prefix}* variables")
        return cls.model_validate(values)
