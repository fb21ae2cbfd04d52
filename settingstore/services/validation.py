"""
Rule-set validation for setting values.

Rules are short descriptors such as ``required``, ``email``, ``max:255`` or
``in:light,dark``. A rule list can also be given as one pipe-joined string
(``"required|integer|min:1"``). Validation collects every violation instead
of stopping at the first one.
"""

import json
import logging
import re
from typing import Any, Callable

from pydantic import AnyUrl, EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(AnyUrl)

NUMERIC_RULES = {"integer", "numeric"}


def parse_rules(rules: Any) -> list[tuple[str, list[str]]]:
    """
    Split rule descriptors into (name, arguments) pairs.

    Args:
        rules: A list of descriptors or a single pipe-joined string

    Returns:
        List of (rule_name, args) tuples in declaration order
    """
    if not rules:
        return []
    if isinstance(rules, str):
        rules = rules.split("|")

    parsed = []
    for rule in rules:
        rule = str(rule).strip()
        if not rule:
            continue
        name, _, raw_args = rule.partition(":")
        if name.lower() == "regex":
            # the pattern itself may contain commas and colons
            args = [raw_args] if raw_args else []
        else:
            args = [a.strip() for a in raw_args.split(",")] if raw_args else []
        parsed.append((name.strip().lower(), args))
    return parsed


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, dict)) and len(value) == 0:
        return True
    return False


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
            return True
        except ValueError:
            return False
    return False


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, str):
        return re.fullmatch(r"[+-]?\d+", value.strip()) is not None
    return False


def _size(value: Any, numeric: bool) -> float | None:
    """Size used by min/max/between/size rules."""
    if numeric and _is_numeric(value):
        return float(value)
    if isinstance(value, (list, tuple, dict)):
        return float(len(value))
    if isinstance(value, str):
        return float(len(value))
    if _is_numeric(value):
        return float(value)
    return None


def _size_unit(value: Any, numeric: bool) -> str:
    if numeric and _is_numeric(value):
        return ""
    if isinstance(value, (list, tuple, dict)):
        return " items"
    return " characters"


class RuleValidator:
    """
    Validates values against rule lists.

    Each check returns an error message or None. Unknown rules and rules
    with malformed arguments (``min:abc``, a broken regex) are logged and
    skipped.
    """

    field = "value"

    def __init__(self):
        self._checks: dict[str, Callable[[Any, list[str], bool], str | None]] = {
            "string": self._check_string,
            "integer": self._check_integer,
            "numeric": self._check_numeric,
            "boolean": self._check_boolean,
            "array": self._check_array,
            "json": self._check_json,
            "email": self._check_email,
            "url": self._check_url,
            "min": self._check_min,
            "max": self._check_max,
            "between": self._check_between,
            "size": self._check_size,
            "in": self._check_in,
            "not_in": self._check_not_in,
            "regex": self._check_regex,
            "alpha": self._check_alpha,
            "alpha_num": self._check_alpha_num,
            "alpha_dash": self._check_alpha_dash,
            "starts_with": self._check_starts_with,
            "ends_with": self._check_ends_with,
        }

    def validate(self, value: Any, rules: Any) -> list[str]:
        """
        Validate a value.

        Args:
            value: Candidate value
            rules: Rule descriptors

        Returns:
            Every violation message, empty when the value passes
        """
        parsed = parse_rules(rules)
        names = {name for name, _ in parsed}
        numeric = bool(names & NUMERIC_RULES)
        errors: list[str] = []

        if _is_empty(value):
            if "required" in names:
                errors.append(f"The {self.field} field is required.")
            # remaining rules only apply to present values
            return errors

        for name, args in parsed:
            if name in ("required", "nullable", "sometimes"):
                continue
            check = self._checks.get(name)
            if check is None:
                logger.warning(f"Unknown validation rule '{name}' ignored")
                continue
            try:
                message = check(value, args, numeric)
            except (ValueError, re.error) as e:
                logger.warning(f"Malformed validation rule '{name}' {args} ignored: {e}")
                continue
            if message:
                errors.append(message)
        return errors

    def passes(self, value: Any, rules: Any) -> bool:
        return not self.validate(value, rules)

    # Type rules

    def _check_string(self, value, args, numeric):
        if not isinstance(value, str):
            return f"The {self.field} field must be a string."

    def _check_integer(self, value, args, numeric):
        if not _is_integer(value):
            return f"The {self.field} field must be an integer."

    def _check_numeric(self, value, args, numeric):
        if not _is_numeric(value):
            return f"The {self.field} field must be a number."

    def _check_boolean(self, value, args, numeric):
        if value not in (True, False, 0, 1, "0", "1", "true", "false"):
            return f"The {self.field} field must be true or false."

    def _check_array(self, value, args, numeric):
        if not isinstance(value, (list, tuple, dict)):
            return f"The {self.field} field must be an array."

    def _check_json(self, value, args, numeric):
        if not isinstance(value, str):
            return f"The {self.field} field must be a valid JSON string."
        try:
            json.loads(value)
        except json.JSONDecodeError:
            return f"The {self.field} field must be a valid JSON string."

    def _check_email(self, value, args, numeric):
        try:
            _email_adapter.validate_python(value)
        except PydanticValidationError:
            return f"The {self.field} field must be a valid email address."

    def _check_url(self, value, args, numeric):
        if not isinstance(value, str):
            return f"The {self.field} field must be a valid URL."
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            return f"The {self.field} field must be a valid URL."

    # Size rules

    def _check_min(self, value, args, numeric):
        size = _size(value, numeric)
        if size is None or not args:
            return None
        if size < float(args[0]):
            unit = _size_unit(value, numeric)
            return f"The {self.field} field must be at least {args[0]}{unit}."

    def _check_max(self, value, args, numeric):
        size = _size(value, numeric)
        if size is None or not args:
            return None
        if size > float(args[0]):
            unit = _size_unit(value, numeric)
            return f"The {self.field} field must not be greater than {args[0]}{unit}."

    def _check_between(self, value, args, numeric):
        size = _size(value, numeric)
        if size is None or len(args) < 2:
            return None
        if not float(args[0]) <= size <= float(args[1]):
            unit = _size_unit(value, numeric)
            return f"The {self.field} field must be between {args[0]} and {args[1]}{unit}."

    def _check_size(self, value, args, numeric):
        size = _size(value, numeric)
        if size is None or not args:
            return None
        if size != float(args[0]):
            unit = _size_unit(value, numeric)
            return f"The {self.field} field must be {args[0]}{unit}."

    # Content rules

    def _check_in(self, value, args, numeric):
        if str(value) not in args:
            return f"The selected {self.field} is invalid."

    def _check_not_in(self, value, args, numeric):
        if str(value) in args:
            return f"The selected {self.field} is invalid."

    def _check_regex(self, value, args, numeric):
        if not args:
            return None
        pattern = args[0]
        # accept delimited patterns such as /^[a-z]+$/i
        flags = 0
        delimited = re.fullmatch(r"/(.*)/([a-z]*)", pattern, re.DOTALL)
        if delimited:
            pattern, modifiers = delimited.groups()
            if "i" in modifiers:
                flags |= re.IGNORECASE
        if not isinstance(value, (str, int, float)) or not re.search(pattern, str(value), flags):
            return f"The {self.field} field format is invalid."

    def _check_alpha(self, value, args, numeric):
        if not isinstance(value, str) or not value.isalpha():
            return f"The {self.field} field must only contain letters."

    def _check_alpha_num(self, value, args, numeric):
        if not isinstance(value, str) or not value.isalnum():
            return f"The {self.field} field must only contain letters and numbers."

    def _check_alpha_dash(self, value, args, numeric):
        if not isinstance(value, str) or not re.fullmatch(r"[\w-]+", value):
            return f"The {self.field} field must only contain letters, numbers, dashes, and underscores."

    def _check_starts_with(self, value, args, numeric):
        if not isinstance(value, str) or not any(value.startswith(a) for a in args):
            return f"The {self.field} field must start with one of the following: {', '.join(args)}."

    def _check_ends_with(self, value, args, numeric):
        if not isinstance(value, str) or not any(value.endswith(a) for a in args):
            return f"The {self.field} field must end with one of the following: {', '.join(args)}."
