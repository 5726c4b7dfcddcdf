"""Mount resolution: from a request path to a document-store address.

A ``MountResolver`` knows the configured ``Mount`` table and turns a
request into a ``ResolvedContext``: which database, collection and
document the path names, what kind of resource that is, the canonical
store path used for template lookup, any trailing segments that do not
address anything, the tenant behind a host-partitioned mount, and which
create/delete actions make sense at this level.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from veneer.config import Mount
from veneer.http.request import Request
from veneer.templating.resolver import ResourceKind

logger = logging.getLogger("veneer.store")

SYSTEM_DATABASES = frozenset({"admin", "config", "local"})


def is_system_database(name: str) -> bool:
    return name in SYSTEM_DATABASES


def is_system_collection(name: str) -> bool:
    return name.startswith(("system.", "_"))


class StoreResourceType(Enum):
    """What a store path addresses."""

    ROOT = "root"  # the list of databases
    DATABASE = "database"  # the list of collections in a database
    COLLECTION = "collection"  # the documents in a collection
    DOCUMENT = "document"  # a single document

    @property
    def kind(self) -> ResourceKind:
        """The template-resolution kind for this resource type."""
        match self:
            case StoreResourceType.ROOT:
                return ResourceKind.ROOT
            case StoreResourceType.DATABASE | StoreResourceType.COLLECTION:
                return ResourceKind.CONTAINER
            case StoreResourceType.DOCUMENT:
                return ResourceKind.ITEM


@dataclass(frozen=True, slots=True)
class ResolvedContext:
    """The store address a request path resolved to."""

    mount: Mount
    resource_type: StoreResourceType
    database: str | None = None
    collection: str | None = None
    document_id: str | None = None
    extra_segments: tuple[str, ...] = ()
    store_path: str = "/"
    tenant_id: str | None = None
    has_parametric_mounts: bool = False

    @property
    def kind(self) -> ResourceKind:
        return self.resource_type.kind

    @property
    def has_extra_segments(self) -> bool:
        """True when the path continues past the document id."""
        return bool(self.extra_segments)

    @property
    def resource_path(self) -> str:
        """Canonical ``/db/coll/id`` path, independent of the mount prefix."""
        parts = [p for p in (self.database, self.collection, self.document_id) if p is not None]
        return "/" + "/".join(parts)

    @property
    def is_multi_tenant(self) -> bool:
        return self.has_parametric_mounts and self.tenant_id is not None

    # -- Permission flags --

    @property
    def can_create_databases(self) -> bool:
        return self.mount.is_wildcard and self.resource_type is StoreResourceType.ROOT

    @property
    def can_create_collections(self) -> bool:
        return self.resource_type is StoreResourceType.DATABASE

    @property
    def can_create_documents(self) -> bool:
        return self.resource_type is StoreResourceType.COLLECTION

    @property
    def can_delete_database(self) -> bool:
        return self.mount.is_wildcard and self.resource_type is StoreResourceType.DATABASE

    @property
    def can_delete_collection(self) -> bool:
        return self.resource_type is StoreResourceType.COLLECTION

    @property
    def collection_url(self) -> str:
        """Listing URL to return to from a document (drops the id)."""
        if self.resource_type is StoreResourceType.DOCUMENT:
            return self.resource_path.rsplit("/", 1)[0] or "/"
        return self.resource_path


def host_params(request: Request) -> dict[str, str]:
    """Split the ``Host`` header into ``host`` and ``host[N]`` labels.

    ``shop.example.com:8080`` gives ``{"host": "shop.example.com",
    "host[0]": "shop", "host[1]": "example", "host[2]": "com"}``.
    """
    header = request.headers.get("host")
    if not header:
        return {}
    hostname = header.split(":", 1)[0]
    params = {"host": hostname}
    for i, label in enumerate(hostname.split(".")):
        params[f"host[{i}]"] = label
    return params


def _join(where: str, path: str) -> tuple[str, ...] | None:
    """Segments of *path* below the mount point *where*, or ``None``."""
    prefix = where.rstrip("/")
    if prefix and path != prefix and not path.startswith(prefix + "/"):
        return None
    rest = path[len(prefix) :]
    return tuple(seg for seg in rest.split("/") if seg)


class MountResolver:
    """Resolve request paths against the configured mounts.

    Mounts are tried longest prefix first, so ``/api/admin`` can sit next
    to ``/api``. Resolution is a pure function of the request; the
    resolver holds no per-request state.
    """

    __slots__ = ("_mounts", "_parametric")

    def __init__(self, mounts: tuple[Mount, ...]) -> None:
        self._mounts = tuple(sorted(mounts, key=lambda m: len(m.where.rstrip("/")), reverse=True))
        self._parametric = tuple(m for m in mounts if m.is_parametric)

    @property
    def mounts(self) -> tuple[Mount, ...]:
        return self._mounts

    @property
    def has_parametric_mounts(self) -> bool:
        return bool(self._parametric)

    def tenant_id(self, request: Request) -> str | None:
        """The tenant named by the request's host, if any mount is host-partitioned."""
        if not self._parametric:
            return None
        return self._substitute(self._parametric[0].what, host_params(request))

    def resolve(self, request: Request) -> ResolvedContext | None:
        """Map *request* to a store address, or ``None`` if no mount applies."""
        for mount in self._mounts:
            segments = _join(mount.where, request.path)
            if segments is None:
                continue
            return self._resolve_in(mount, segments, request)
        return None

    def _resolve_in(
        self,
        mount: Mount,
        segments: tuple[str, ...],
        request: Request,
    ) -> ResolvedContext | None:
        if mount.is_wildcard:
            database = segments[0] if segments else None
            rest = segments[1:]
        elif mount.is_parametric:
            database = self._substitute(mount.what, host_params(request))
            if database is None:
                logger.debug("Host %r does not fill mount %r", request.headers.get("host"), mount.what)
                return None
            rest = segments
        else:
            database = mount.what
            rest = segments

        collection = rest[0] if len(rest) > 0 else None
        document_id = rest[1] if len(rest) > 1 else None
        extra = rest[2:]

        if database is None:
            resource_type = StoreResourceType.ROOT
        elif collection is None:
            resource_type = StoreResourceType.DATABASE
        elif document_id is None:
            resource_type = StoreResourceType.COLLECTION
        else:
            resource_type = StoreResourceType.DOCUMENT

        if extra:
            logger.debug("Path %s has extra segments %r", request.path, extra)

        return ResolvedContext(
            mount=mount,
            resource_type=resource_type,
            database=database,
            collection=collection,
            document_id=document_id,
            extra_segments=extra,
            store_path="/" + "/".join(segments),
            tenant_id=self.tenant_id(request),
            has_parametric_mounts=self.has_parametric_mounts,
        )

    @staticmethod
    def _substitute(template: str, params: dict[str, str]) -> str | None:
        key = template[1:-1]
        return params.get(key) or None
