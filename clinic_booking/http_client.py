"""HTTP session for outbound calls.

Pattern: requests.Session with connection pooling and a default timeout.
Sends are not retried here; a failed message is logged by the transport and
the user simply sends their next message.
"""
import requests
from requests.adapters import HTTPAdapter

DEFAULT_TIMEOUT = 15


class TimeoutHTTPAdapter(HTTPAdapter):
    """Applies a default timeout to every request made through the session."""

    def __init__(self, *args, timeout: float = DEFAULT_TIMEOUT, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def create_http_session(timeout: float = DEFAULT_TIMEOUT, pool_size: int = 10) -> requests.Session:
    """
    Create HTTP session with connection pooling.

    Args:
        timeout: Request timeout in seconds (default: 15)
        pool_size: Connections kept per host

    Returns:
        Configured requests.Session
    """
    session = requests.Session()

    adapter = TimeoutHTTPAdapter(
        timeout=timeout,
        max_retries=0,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session
