"""Routing: a path trie compiled once when the app freezes.

Static segments win over parameters, and parameters win over a trailing
``{name:path}`` catch-all, which is how store mounts coexist with
ordinary routes such as ``/login``.
"""

from veneer.routing.route import Route, RouteMatch
from veneer.routing.router import Router

__all__ = ["Route", "RouteMatch", "Router"]
