"""Shared helpers for the HTML fragments returned by the story endpoint.

The preview tooling pulls the markup out of the ``___cl-wrapper`` container,
so every response (success or error) goes through wrap_markup().
"""

import time
from typing import Optional

from markupsafe import Markup

WRAPPER_ID = "___cl-wrapper"


def generate_error_html(message: str, title: str = "Unable to find component") -> Markup:
    """Inline error fragment shown in place of a component that failed to resolve."""
    return Markup(
        '<div class="messages messages--error"><h3>{title}</h3>'
        "Check that the module or theme containing the component is enabled and "
        "matches the stories file name. Message: <em>{message}</em></div>"
    ).format(title=title, message=message)


def wrap_markup(markup: str) -> str:
    """Wrap rendered markup in the container the preview client reads."""
    return f'<div id="{WRAPPER_ID}">{markup}</div>'


def to_base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    sign = "-" if number < 0 else ""
    number = abs(number)
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return sign + "".join(reversed(out))


def asset_query_string(request_time: Optional[float] = None) -> str:
    """Cache-busting token derived from the request time (base 36 seconds)."""
    return to_base36(int(request_time if request_time is not None else time.time()))

