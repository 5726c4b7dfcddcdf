"""Test utilities for veneer applications.

Provides an in-process test client and response assertions::

    from veneer.testing import TestClient, assert_is_html
"""

from veneer.testing.assertions import (
    assert_is_error_page,
    assert_is_html,
    assert_is_json,
    assert_not_modified,
    assert_redirects_to,
)
from veneer.testing.client import TestClient

__all__ = [
    "TestClient",
    "assert_is_error_page",
    "assert_is_html",
    "assert_is_json",
    "assert_not_modified",
    "assert_redirects_to",
]
