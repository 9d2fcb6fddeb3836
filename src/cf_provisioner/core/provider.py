"""Access to the Cloudflare API client."""

from functools import cached_property
from typing import Any, Literal, Self, TypeAlias

import cloudflare
from pydantic import BaseModel, ConfigDict, SecretStr

ErrorKind: TypeAlias = Literal["not_found", "transient", "fatal"]

_RETRYABLE_STATUS = frozenset({408, 429})


class CloudflareProvider(BaseModel):
    """Settings for the ``cloudflare.Cloudflare`` client the reconcilers share.

    The SDK's own retry loop is off (``max_retries=0``); callers decide
    whether a transient failure is worth another run.

    Tests and embedding code hand over a ready client with
    :meth:`from_client`::

        provider = CloudflareProvider.from_client(cloudflare.Cloudflare(api_token="..."))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_token: SecretStr | None = None
    base_url: str | None = None
    timeout: float | None = None
    max_retries: int = 0

    _injected_client: Any = None

    @classmethod
    def from_client(cls, client: Any) -> Self:
        provider = cls.model_construct()
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> cloudflare.Cloudflare:
        if self._injected_client is not None:
            return self._injected_client
        if self.api_token is None:
            raise ValueError("api_token is required unless a client comes from from_client()")

        options: dict[str, Any] = {"max_retries": self.max_retries}
        for option in ("base_url", "timeout"):
            if (value := getattr(self, option)) is not None:
                options[option] = value
        return cloudflare.Cloudflare(api_token=self.api_token.get_secret_value(), **options)


def classify_error(exc: BaseException) -> ErrorKind:
    """Sort an API failure into ``not_found``, ``transient`` or ``fatal``.

    Anything with an integer ``status_code`` is judged by it, so SDK errors
    and test doubles behave alike.
    """
    if isinstance(exc, cloudflare.APIConnectionError):
        return "transient"
    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        return "fatal"
    if status == 404:
        return "not_found"
    return "transient" if status in _RETRYABLE_STATUS or status >= 500 else "fatal"
