"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Mount:
    """Maps a URL prefix onto the document store.

    ``what`` selects the databases exposed under ``where``:

    - ``"*"``: every database, addressed as ``{where}/{db}/{coll}/{id}``
    - ``"inventory"``: one fixed database, addressed as ``{where}/{coll}/{id}``
    - ``"{host[0]}"`` / ``"{host}"``: the database is taken from the
      request's ``Host`` header, making the mount tenant-partitioned

    Usage::

        Mount(where="/api", what="*")
        Mount(where="/", what="{host[0]}")
    """

    where: str = "/"
    what: str = "*"

    @property
    def is_parametric(self) -> bool:
        """True when the database name is derived from the request."""
        return self.what.startswith("{") and self.what.endswith("}")

    @property
    def is_wildcard(self) -> bool:
        return self.what == "*"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, response_caching=False, max_age=30)
    """

    # Server
    debug: bool = False  # 500 bodies carry the exception text

    # Templates
    template_dir: str | Path = "templates"
    component_dirs: tuple[str | Path, ...] = ()  # Additional template directories (e.g. partials)
    template_suffix: str = ".html"  # Appended to resolved template ids ("a/b/list" -> "a/b/list.html")
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # HTML rendering of API responses
    html_enabled: bool = True
    response_caching: bool = True  # ETag + conditional requests; False sends no-cache directives
    max_age: int = 5  # Cache-Control max-age in seconds when caching is on

    # Document store API
    mounts: tuple[Mount, ...] = (Mount(),)
    default_pagesize: int = 100
    max_pagesize: int = 1000

    # Login
    login_uri: str | None = None
    login_redirect_param: str = "redirect"
    login_default_redirect: str = "/"
    roles_endpoint: str = "/roles"
    auth_cookie: str = "auth_token"
    login_exclude_paths: tuple[str, ...] = ()

    # Global template context (read-only after freeze)
    version: str = ""
    build_time: str = ""
    template_globals: dict[str, Any] = field(default_factory=dict)
