"""Connection string parsing.

A data source is described by a URL of the form::

    protocol://[user[:password]@]host[:port][,host2[:port2]...]/[database[/collection]][?opt=val&...][#fragment]

Several hosts may be listed, separated by commas, which is why the
netloc is split by hand instead of relying on ``urllib.parse.urlsplit``
(its port accessor rejects multi-host netlocs).
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote, urlencode

from docbridge.store.exceptions import InvalidArgumentError


class DataSource:
    """Parsed connection descriptor."""

    def __init__(self, connection: str):
        """Parse a connection string.

        Args:
            connection: Connection URL

        Raises:
            InvalidArgumentError: If the string is not a valid connection URL
        """
        self._protocol: str = ""
        self._hosts: List[Tuple[str, Optional[int]]] = []
        self._user: Optional[str] = None
        self._password: Optional[str] = None
        self._path: Optional[str] = None
        self._query: Dict[str, str] = {}
        self._fragment: Optional[str] = None
        self._parse(str(connection))

    def __str__(self) -> str:
        return self.url()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url(with_password=False)!r})"

    # Parsing

    def _parse(self, connection: str) -> None:
        if "://" not in connection:
            raise InvalidArgumentError(f"Missing protocol in connection string: '{connection}'")

        protocol, rest = connection.split("://", 1)
        if not protocol:
            raise InvalidArgumentError(f"Empty protocol in connection string: '{connection}'")
        self._protocol = protocol.lower()

        if "#" in rest:
            rest, fragment = rest.split("#", 1)
            self._fragment = unquote(fragment) or None
        if "?" in rest:
            rest, query = rest.split("?", 1)
            self._query = dict(parse_qsl(query, keep_blank_values=True))

        netloc, slash, path = rest.partition("/")
        if slash:
            self._path = "/" + path if path else None

        if "@" in netloc:
            credentials, netloc = netloc.rsplit("@", 1)
            user, colon, password = credentials.partition(":")
            self._user = unquote(user) or None
            self._password = unquote(password) if colon else None

        if not netloc:
            raise InvalidArgumentError(f"Missing host in connection string: '{connection}'")

        self._hosts = [self._parse_host(item, connection) for item in netloc.split(",")]

    @staticmethod
    def _parse_host(item: str, connection: str) -> Tuple[str, Optional[int]]:
        if item.startswith("["):
            # IPv6 literal, kept with its brackets
            end = item.find("]")
            if end < 0 or (item[end + 1:] and not item[end + 1:].startswith(":")):
                raise InvalidArgumentError(f"Invalid IPv6 host '{item}' in connection string: '{connection}'")
            host, colon, port = item[:end + 1], item[end + 1:end + 2], item[end + 2:]
        elif ":" in item:
            host, colon, port = item.rpartition(":")
        else:
            host, colon, port = item, "", ""
        if not host or host == "[]":
            raise InvalidArgumentError(f"Empty host in connection string: '{connection}'")
        if not colon:
            return host, None
        try:
            number = int(port)
        except ValueError:
            raise InvalidArgumentError(f"Invalid port '{port}' in connection string: '{connection}'")
        if not 0 < number < 65536:
            raise InvalidArgumentError(f"Port out of range '{port}' in connection string: '{connection}'")
        return host, number

    # Mutation guard

    def _check_mutable(self, offset: str) -> None:
        """Hook called before any descriptor field changes."""
        pass

    def _assign(self, offset: str, attribute: str, value: Any) -> None:
        self._check_mutable(offset)
        setattr(self, attribute, value)

    # Accessors

    @property
    def protocol(self) -> str:
        return self._protocol

    @protocol.setter
    def protocol(self, value: str) -> None:
        if not value:
            raise InvalidArgumentError("Protocol cannot be empty")
        self._assign("protocol", "_protocol", str(value).lower())

    @property
    def hosts(self) -> List[Tuple[str, Optional[int]]]:
        """All ``(host, port)`` pairs, in connection string order."""
        return list(self._hosts)

    @hosts.setter
    def hosts(self, value: List[Tuple[str, Optional[int]]]) -> None:
        hosts = [(str(host), None if port is None else int(port)) for host, port in value]
        if not hosts:
            raise InvalidArgumentError("At least one host is required")
        self._assign("hosts", "_hosts", hosts)

    @property
    def host(self) -> str:
        """First host name."""
        return self._hosts[0][0]

    @host.setter
    def host(self, value: str) -> None:
        self.hosts = [(value, self.port)] + self._hosts[1:]

    @property
    def port(self) -> Optional[int]:
        """Port of the first host."""
        return self._hosts[0][1]

    @port.setter
    def port(self, value: Optional[int]) -> None:
        self.hosts = [(self.host, value)] + self._hosts[1:]

    @property
    def user(self) -> Optional[str]:
        return self._user

    @user.setter
    def user(self, value: Optional[str]) -> None:
        self._assign("user", "_user", value)

    @property
    def password(self) -> Optional[str]:
        return self._password

    @password.setter
    def password(self, value: Optional[str]) -> None:
        self._assign("password", "_password", value)

    @property
    def path(self) -> Optional[str]:
        return self._path

    @path.setter
    def path(self, value: Optional[str]) -> None:
        if value and not value.startswith("/"):
            value = "/" + value
        self._assign("path", "_path", value or None)

    @property
    def query(self) -> Dict[str, str]:
        return dict(self._query)

    @query.setter
    def query(self, value: Optional[Dict[str, str]]) -> None:
        self._assign("query", "_query", dict(value or {}))

    @property
    def fragment(self) -> Optional[str]:
        return self._fragment

    @fragment.setter
    def fragment(self, value: Optional[str]) -> None:
        self._assign("fragment", "_fragment", value)

    @property
    def path_segments(self) -> List[str]:
        """Non-empty path segments."""
        if not self._path:
            return []
        return [unquote(part) for part in self._path.split("/") if part]

    @property
    def database_name(self) -> Optional[str]:
        """Database named by the first path segment, if any."""
        segments = self.path_segments
        return segments[0] if segments else None

    @property
    def collection_name(self) -> Optional[str]:
        """Collection named by the second path segment, if any."""
        segments = self.path_segments
        return segments[1] if len(segments) > 1 else None

    def netloc(self, with_credentials: bool = True, with_password: bool = True) -> str:
        """Rebuild the ``[user[:password]@]host[:port],...`` part."""
        hosts = ",".join(
            host if port is None else f"{host}:{port}" for host, port in self._hosts
        )
        if not with_credentials or self._user is None:
            return hosts
        credentials = quote(self._user, safe="")
        if self._password is not None:
            credentials += ":" + (quote(self._password, safe="") if with_password else "***")
        return f"{credentials}@{hosts}"

    def url(self, with_password: bool = True) -> str:
        """Rebuild the full connection string."""
        url = f"{self._protocol}://{self.netloc(with_password=with_password)}"
        if self._path:
            url += self._path
        if self._query:
            url += "?" + urlencode(self._query)
        if self._fragment:
            url += "#" + quote(self._fragment, safe="")
        return url
