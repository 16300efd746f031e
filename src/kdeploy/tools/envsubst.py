"""
Shell-like variable substitution for manifest files and configured names.
"""

import re
from collections.abc import Callable, Mapping

_VARIABLE = re.compile(r"\$([A-Za-z0-9_]+|\{[A-Za-z0-9_.]+\}|\$)")


def expand_variables(text: str, variables: Mapping[str, str]) -> str:
    """
    Replace `$NAME` and `${NAME}` in *text* with the values in *variables*. Placeholders for names that are not in
    the mapping are left untouched. `$$` is an escape for a literal `$`.
    """

    def _repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key == "$":
            return "$"
        if key.startswith("{"):
            key = key[1:-1]
        value = variables.get(key)
        if value is None:
            return match.group(0)
        return value

    return _VARIABLE.sub(_repl, text)


def substitution(variables: Mapping[str, str]) -> Callable[[str], str]:
    """
    Return a function that expands *variables* in the text passed to it.
    """

    return lambda text: expand_variables(text, variables)
