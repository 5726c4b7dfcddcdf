"""Response classification.

Every response the HTML pipeline sees ends in exactly one disposition.
The checks run in a fixed order and the first that applies wins; the
template lookup is injected so this module stays a pure decision table.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from veneer.html.detect import Capabilities


class Disposition(Enum):
    PASS_THROUGH = "pass_through"  # send the API response unchanged
    RENDER_ERROR = "render_error"  # render the error page
    RENDER_SUCCESS = "render_success"  # render the resolved template


# Left to the API: the login flow and clients that handle auth themselves
AUTH_STATUSES = frozenset({401, 403})


@dataclass(frozen=True, slots=True)
class Classification:
    """The outcome, with the status and template id it was decided on."""

    disposition: Disposition
    status: int
    template: str | None = None


def classify(
    capabilities: Capabilities,
    status: int,
    *,
    has_extra_segments: bool,
    find_template: Callable[[], str | None],
) -> Classification:
    """Decide what to do with a response.

    ``find_template`` is called at most once, and only for a 2xx status on
    a well-formed path.
    """
    if not capabilities.render_as_document:
        return Classification(Disposition.PASS_THROUGH, status)

    if status in AUTH_STATUSES:
        return Classification(Disposition.PASS_THROUGH, status)

    if status >= 400:
        return Classification(Disposition.RENDER_ERROR, status)

    if has_extra_segments:
        return Classification(Disposition.RENDER_ERROR, 404)

    if 200 <= status < 300:
        template = find_template()
        if template is not None:
            return Classification(Disposition.RENDER_SUCCESS, status, template)

    return Classification(Disposition.PASS_THROUGH, status)
