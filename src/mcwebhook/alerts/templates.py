"""``%name%`` placeholder rendering for message templates."""
from __future__ import annotations

import re
from typing import Mapping


def render(template: str, variables: Mapping[str, str]) -> str:
    """Substitute every ``%key%`` whose key is in variables.

    Placeholders with no matching variable are left as written. An empty
    template renders to an empty string, which callers treat as "send
    nothing".

    Example::

        render("Welcome %playerName%!", {"playerName": "Steve"})  # 'Welcome Steve!'
        render("Hi %unknown%", {})                                # 'Hi %unknown%'
    """
    keys = [key for key in variables if key]
    if not template or not keys:
        return template

    # Only known keys are matched, so an unknown token never swallows the
    # '%' that opens the next placeholder.
    pattern = re.compile("%(" + "|".join(re.escape(key) for key in keys) + ")%")
    return pattern.sub(lambda m: str(variables[m.group(1)]), template)
