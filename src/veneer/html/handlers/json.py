"""Generic context builder: any JSON body.

Last in the chain and accepts every response. Top-level keys of a JSON
object body become context variables, and the raw text is available as
``json``. A body that is not a JSON object contributes no keys.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from veneer.html.handlers.base import base_context
from veneer.http.request import Request
from veneer.http.response import Response

logger = logging.getLogger("veneer.html")


def decode_object(text: str) -> dict[str, Any]:
    """Decode *text* as a JSON object, or ``{}`` if it is not one."""
    if not text or not text.strip():
        return {}
    try:
        value = json.loads(text)
    except ValueError:
        logger.warning("Response body is not valid JSON; rendering without data")
        return {}
    if not isinstance(value, dict):
        logger.debug("Response body is JSON %s, not an object", type(value).__name__)
        return {}
    return value


class JsonContextBuilder:
    __slots__ = ("_globals",)

    def __init__(self, globals_: Mapping[str, Any]) -> None:
        self._globals = globals_

    def can_handle(self, response: Response) -> bool:
        return True

    async def build_context(self, request: Request, response: Response) -> dict[str, Any]:
        try:
            text = response.text
        except UnicodeDecodeError:
            logger.warning("Response body for %s is not UTF-8", request.path)
            text = ""
        context = base_context(request, self._globals)
        context["json"] = text
        context.update(decode_object(text))
        return context
