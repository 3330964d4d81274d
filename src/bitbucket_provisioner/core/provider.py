"""Bitbucket Provider - Connection configuration for a Bitbucket workspace."""

from functools import cached_property
from typing import Self

from pydantic import BaseModel, ConfigDict, SecretStr

from bitbucket_provisioner.core.client import DEFAULT_BASE_URL, BearerAuth, BitbucketClient


class AppPasswordAuth(BaseModel):
    """HTTP basic authentication with a Bitbucket app password."""

    username: str
    app_password: SecretStr


class TokenAuth(BaseModel):
    """Bearer authentication with a workspace or repository access token."""

    access_token: SecretStr


class BitbucketProvider(BaseModel):
    """Connection configuration for the Bitbucket Cloud API.

    Provide host and auth, or use ``from_client`` to inject a pre-built
    client (useful for testing with a mock).

    Examples:
        provider = BitbucketProvider(
            auth=AppPasswordAuth(username="ci-bot", app_password="..."),
        )

        provider = BitbucketProvider.from_client(BitbucketClient(auth=("u", "p")))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str = DEFAULT_BASE_URL
    auth: AppPasswordAuth | TokenAuth | None = None
    timeout: float = 30

    # Injected client (for testing)
    _injected_client: BitbucketClient | None = None

    @classmethod
    def from_client(cls, client: BitbucketClient) -> Self:
        """Create a provider with an injected client."""
        provider = cls.model_construct()
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> BitbucketClient:
        """Get the Bitbucket client."""
        if self._injected_client is not None:
            return self._injected_client

        if self.auth is None:
            raise ValueError(
                "Either provide auth, or use BitbucketProvider.from_client() to inject a client"
            )

        if isinstance(self.auth, TokenAuth):
            auth = BearerAuth(self.auth.access_token.get_secret_value())
            return BitbucketClient(self.host, auth=auth, timeout=self.timeout)

        return BitbucketClient(
            self.host,
            auth=(self.auth.username, self.auth.app_password.get_secret_value()),
            timeout=self.timeout,
        )
