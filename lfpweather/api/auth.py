import hmac
from typing import Iterable, Optional

from fastapi import Depends, Header, Request

from lfpweather.api.problems import ProblemException
from lfpweather.core.logger import get_logger

logger = get_logger("api.auth")

API_KEY_HEADER = "X-API-Key"


class APIKeyAuthenticator:
    """Accepts a request when authentication is off or its key is configured."""

    def __init__(self, enabled: bool, api_keys: Iterable[str]):
        self.enabled = enabled
        self._keys = [k.encode("utf-8") for k in api_keys if k]

    def is_valid(self, candidate: Optional[str]) -> bool:
        if not self.enabled:
            return True
        if not candidate:
            return False
        raw = candidate.encode("utf-8")
        matches = [hmac.compare_digest(raw, key) for key in self._keys]  # no short circuit
        return any(matches)


def get_authenticator(request: Request) -> APIKeyAuthenticator:
    return request.app.state.authenticator  # type: ignore[return-value]


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER),
    authenticator: APIKeyAuthenticator = Depends(get_authenticator),
) -> None:
    if authenticator.is_valid(x_api_key):
        return
    logger.warning("api_key_rejected", extra={"path": request.url.path})
    raise ProblemException(401, "invalid api key", f"{x_api_key or ''} is not a valid api key")
