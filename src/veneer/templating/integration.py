"""Kida environment setup and the template engine adapter.

``create_environment`` builds a kida Environment from veneer's AppConfig
once during ``App._freeze()``. ``TemplateEngine`` wraps it with the two
operations the HTML pipeline needs: a live existence check and a render
that only ever fails with ``TemplateRenderError``.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from kida import ChoiceLoader, Environment, FileSystemLoader
from kida.exceptions import TemplateNotFoundError

from veneer.config import AppConfig
from veneer.errors import TemplateRenderError
from veneer.templating.filters import BUILTIN_FILTERS

logger = logging.getLogger("veneer.templating")


def create_environment(
    config: AppConfig,
    filters: dict[str, Callable[..., Any]],
    globals_: Mapping[str, Any],
) -> Environment:
    """Create a kida Environment from app configuration.

    Templates are looked up in ``config.template_dir`` first, then in each
    of ``config.component_dirs``. ``auto_reload`` is always on so that
    templates added or removed at runtime are seen by the next request.
    """
    loaders = [FileSystemLoader(str(config.template_dir))]
    loaders.extend(FileSystemLoader(str(d)) for d in config.component_dirs)

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=config.autoescape,
        auto_reload=True,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )
    configure_environment(env, filters, globals_)
    return env


def configure_environment(
    env: Environment,
    filters: dict[str, Callable[..., Any]],
    globals_: Mapping[str, Any],
) -> None:
    """Register veneer's built-in filters plus user filters and globals.

    Also applied to environments handed to ``App(kida_env=...)`` so that
    every environment veneer renders with has the same filters.
    """
    env.update_filters(BUILTIN_FILTERS)

    # User-defined filters may override built-ins
    if filters:
        env.update_filters(filters)

    for name, value in globals_.items():
        env.add_global(name, value)


class TemplateEngine:
    """Existence checks and rendering over a kida Environment.

    Template ids handed to the engine carry no extension; ``suffix``
    (``.html`` by default) is appended to form the loader name, so the
    resolver's ``a/b/list`` is the file ``a/b/list.html``.
    """

    __slots__ = ("_env", "_suffix")

    def __init__(self, env: Environment, suffix: str = ".html") -> None:
        self._env = env
        self._suffix = suffix

    @property
    def env(self) -> Environment:
        return self._env

    @property
    def suffix(self) -> str:
        return self._suffix

    def template_name(self, template_id: str) -> str:
        return f"{template_id}{self._suffix}"

    def exists(self, template_id: str) -> bool:
        """True if the template can be loaded right now.

        Missing templates are an expected answer. A template that exists
        but fails to load (syntax error, unreadable file) is logged and
        reported as missing.
        """
        name = self.template_name(template_id)
        try:
            self._env.get_template(name)
        except TemplateNotFoundError:
            return False
        except Exception:
            logger.warning("Template %r exists but could not be loaded", name, exc_info=True)
            return False
        return True

    def render(self, template_id: str, context: Mapping[str, Any]) -> str:
        """Render *template_id* with *context*.

        Raises:
            TemplateRenderError: on any loading or rendering failure.
        """
        name = self.template_name(template_id)
        try:
            template = self._env.get_template(name)
            return template.render(dict(context))
        except Exception as exc:
            raise TemplateRenderError(name, exc) from exc
