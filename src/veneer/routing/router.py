"""Trie-based router.

Routes are added while the app is being configured and the trie is
frozen by ``compile()``. Matching walks one node per path segment.
"""

import re
from dataclasses import dataclass

from veneer.errors import ConfigurationError, MethodNotAllowed, NotFound
from veneer.routing.params import CONVERTERS
from veneer.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Split a route pattern into segments.

    Examples::

        "/login"            -> [PathSegment("login")]
        "/api/{rest:path}"  -> [PathSegment("api"), PathSegment("{rest:path}", True, "rest", "path")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            name, _, param_type = part[1:-1].partition(":")
            param_type = param_type or "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown path converter {param_type!r} in route {path!r}"
                raise ConfigurationError(msg)
            segments.append(PathSegment(part, is_param=True, param_name=name, param_type=param_type))
        else:
            segments.append(PathSegment(part))
    return segments


class _Node:
    """Trie node. Mutable until the router is compiled."""

    __slots__ = ("catch_all", "children", "param", "routes")

    def __init__(self) -> None:
        self.children: dict[str, _Node] = {}
        self.param: _ParamEdge | None = None
        self.catch_all: _CatchAll | None = None
        self.routes: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    name: str
    regex: re.Pattern[str]
    node: _Node


@dataclass(slots=True)
class _CatchAll:
    name: str
    routes: dict[str, Route]


class Router:
    """Method-aware path router.

    Usage::

        router = Router()
        router.add(Route("/login", login, frozenset({"GET"})))
        router.add(Route("/{rest:path}", documents, frozenset({"GET"})))
        router.compile()
        router.match("GET", "/shop/orders")  # -> documents, {"rest": "shop/orders"}
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _Node()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Register *route*. Only allowed before ``compile()``."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.is_catch_all:
                if node.catch_all is None:
                    node.catch_all = _CatchAll(name=seg.param_name or "path", routes={})
                for method in route.methods:
                    node.catch_all.routes[method] = route
                return
            if seg.is_param:
                if node.param is None:
                    node.param = _ParamEdge(
                        name=seg.param_name or "",
                        regex=re.compile(f"^{CONVERTERS[seg.param_type]}$"),
                        node=_Node(),
                    )
                node = node.param.node
            else:
                node = node.children.setdefault(seg.value, _Node())

        for method in route.methods:
            node.routes[method] = route

    @property
    def routes(self) -> list[Route]:
        """Every registered route, each listed once."""
        result: list[Route] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            candidates = list(node.routes.values())
            if node.catch_all is not None:
                candidates.extend(node.catch_all.routes.values())
            for route in candidates:
                if not any(route is r for r in result):
                    result.append(route)
            stack.extend(node.children.values())
            if node.param is not None:
                stack.append(node.param.node)
        return result

    def compile(self) -> None:
        """Freeze the router."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Find the route for *method* and *path*.

        ``HEAD`` falls back to the ``GET`` route.

        Raises:
            NotFound: no route matches the path.
            MethodNotAllowed: the path matches but not for *method*.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        found = self._match(self._root, parts, 0, {})
        if found is None:
            raise NotFound(f"No route matches {method} {path!r}")

        routes, params = found
        route = routes.get(method)
        if route is None and method == "HEAD":
            route = routes.get("GET")
        if route is None:
            raise MethodNotAllowed(frozenset(routes))
        return RouteMatch(route=route, path_params=params)

    def _match(
        self,
        node: _Node,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> tuple[dict[str, Route], dict[str, str]] | None:
        if index == len(parts):
            if node.routes:
                return node.routes, params
            if node.catch_all is not None:
                return node.catch_all.routes, {**params, node.catch_all.name: ""}
            return None

        part = parts[index]

        # Static before parameter before catch-all
        child = node.children.get(part)
        if child is not None:
            found = self._match(child, parts, index + 1, params)
            if found is not None:
                return found

        if node.param is not None and node.param.regex.match(part):
            found = self._match(
                node.param.node, parts, index + 1, {**params, node.param.name: part}
            )
            if found is not None:
                return found

        if node.catch_all is not None:
            return node.catch_all.routes, {**params, node.catch_all.name: "/".join(parts[index:])}

        return None
