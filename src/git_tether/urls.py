from dataclasses import dataclass
from urllib.parse import urlsplit

from .constants import SUPPORTED_SCHEMES
from .errors import InvalidURL, InvalidURLScheme


@dataclass(frozen=True)
class ParsedURL:
    """A validated, scheme-qualified repository address.

    Attributes:
        url (str): The normalized URL string.
        hostname (str): The host portion, used for host key seeding.
        port (int | None): The explicit port, if the URL carries one.
    """

    url: str
    hostname: str
    port: int | None = None


def parse_url(raw: str, private: bool) -> ParsedURL:
    """Validates a repository address and qualifies it with a scheme.

    Addresses without a scheme default to ssh when a private key is in use and
    to https otherwise. A scheme other than https, http or ssh is rejected,
    which also catches a bare ``host:port/path`` mistaken for a scheme.

    Args:
        raw (str): The address as written in the configuration.
        private (bool): Whether the repository authenticates with a private key.

    Returns:
        ParsedURL: The normalized URL and its host.

    Raises:
        InvalidURLScheme: If the address names an unsupported scheme.
        InvalidURL: If the address is empty or cannot be parsed.
    """
    repo_url = raw.strip()
    if not repo_url:
        raise InvalidURL("Repository url is empty")

    scheme, sep, _ = repo_url.partition("://")
    if repo_url.startswith(SUPPORTED_SCHEMES):
        pass
    elif sep:
        raise InvalidURLScheme(scheme)
    elif private:
        repo_url = "ssh://" + repo_url
    else:
        repo_url = "https://" + repo_url

    try:
        parts = urlsplit(repo_url)
        # Port parsing is lazy; touching it surfaces out-of-range values.
        port = parts.port
    except ValueError as e:
        raise InvalidURL(str(e)) from e

    if not parts.hostname:
        raise InvalidURL(f"Repository url '{repo_url}' has no host")

    return ParsedURL(url=repo_url, hostname=parts.hostname, port=port)
