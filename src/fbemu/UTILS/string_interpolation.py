"""
Utilities for substituting environment variables into stack files.
"""
import re
from typing import Dict

_PLACEHOLDER = re.compile(
    r"\$(?:"
    r"(?P<escaped>\$)"
    r"|\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<modifier>[-+])(?P<alt>[^}]*))?\}"
    r")"
)


class EnvironmentInterpolator:
    """
    Replaces ``${VAR}``, ``${VAR:-default}`` and ``${VAR:+value}``
    placeholders. ``$$`` produces a literal ``$``.
    """
    @staticmethod
    def interpolate(template: str, context: Dict[str, str]) -> str:
        """
        Interpolates the template using the provided context.

        :param template: Text containing placeholders.
        :param context: The variables available for substitution.
        :return: The interpolated text.
        :raises KeyError: If a plain ``${VAR}`` is not set.
        """
        def replace(match: re.Match) -> str:
            if match.group("escaped"):
                return "$"

            name = match.group("name")
            value = context.get(name)
            modifier = match.group("modifier")

            if modifier == "-":
                # unset or empty
                return value if value else match.group("alt")
            if modifier == "+":
                return match.group("alt") if value else ""
            if value is None:
                raise KeyError(name)
            return value

        return _PLACEHOLDER.sub(replace, template)
