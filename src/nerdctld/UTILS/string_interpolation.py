"""
Variable expansion in configuration files.
"""
import re
from typing import Mapping

from ..exceptions import ConfigError

# ${NAME}, ${NAME-x}, ${NAME:-x}, ${NAME+x}, ${NAME:+x}, ${NAME?msg}, ${NAME:?msg}, and $$
PATTERN = re.compile(r'\$(?:\$|\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<colon>:?)(?P<op>[-+?])(?P<word>[^}]*))?\})')


class EnvironmentInterpolator:
    """
    Expands shell-style variable references against an environment.

    With a colon the operators treat an empty variable like an unset one,
    as in the shell: ``${VAR:-x}`` falls back to ``x`` for an empty value,
    ``${VAR-x}`` only when VAR is unset. ``$$`` is a literal dollar sign.
    """

    @staticmethod
    def interpolate(template: str, context: Mapping[str, str]) -> str:
        """
        :param template: Text containing variable references.
        :param context: The environment to read variables from.
        :return: The expanded text.
        :raises ConfigError: If ``${VAR}`` or ``${VAR?msg}`` names an unset variable.
        """
        def replace(match):
            name = match.group("name")
            if name is None:
                return "$"
            value = context.get(name)
            op = match.group("op")
            if op is None:
                if value is None:
                    raise ConfigError(f"config references unset variable {name}")
                return value

            present = bool(value) if match.group("colon") else value is not None
            word = match.group("word")
            if op == "-":
                return value if present else word
            if op == "+":
                return word if present else ""
            if not present:
                raise ConfigError(f"{name}: {word or 'required variable is not set'}")
            return value

        return PATTERN.sub(replace, template)
