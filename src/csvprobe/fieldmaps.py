"""Per-column value pipelines: rules applied to a raw cell, then coercion.

A :class:`FieldMap` applies, in this fixed order, its replacement rules,
its removal rules and its transform rules, and finally coerces the result
according to its :class:`~csvprobe.enums.CoercionKind`.  Filter and
exclusion rules are checked by the reader against the coerced value.

Rules are a closed set of tagged variants so that a field map can be
exported to a plain dict and rebuilt from it.  Callables are exported by
reference: either a name given to :func:`register_function` or an
importable ``module:qualname``.
"""

from __future__ import annotations

import dataclasses
import importlib
import math
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar, Union

from csvprobe.enums import CoercionKind
from csvprobe.errors import ConfigurationError

DECIMAL_SEP_POINT = "."
DECIMAL_SEP_COMMA = ","
DECIMAL_SEP_APOSTROPHE = "'"
DECIMAL_SEP_APOSTROPHE_9995 = "⎖"
DECIMAL_SEP_UNDERSCORE = "_"
DECIMAL_SEP_ARABIC = "٫"

DEFAULT_TRUE_VALUES: tuple[Any, ...] = ("1", "true", "on", 1)

_FUNCTIONS: dict[str, Callable[[Any], Any]] = {
    "strip": str.strip,
    "lstrip": str.lstrip,
    "rstrip": str.rstrip,
    "upper": str.upper,
    "lower": str.lower,
    "title": str.title,
}


def register_function(
    name: str, func: Callable[[Any], Any] | None = None
) -> Callable[[Any], Any]:
    """Register *func* under *name* so rules using it can be exported.

    Usable directly or as a decorator::

        @register_function("cents")
        def to_cents(value):
            return int(round(float(value) * 100))
    """

    def decorator(f: Callable[[Any], Any]) -> Callable[[Any], Any]:
        _FUNCTIONS[name] = f
        return f

    if func is not None:
        return decorator(func)
    return decorator  # type: ignore[return-value]


def _import_ref(ref: str) -> Any:
    module_name, _, qualname = ref.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
        for attr in qualname.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError, ValueError) as e:
        msg = f"Cannot resolve function reference {ref!r}: {e}"
        raise ConfigurationError(msg) from e
    return obj


def _function_ref(func: Callable[[Any], Any]) -> str:
    for name, registered in _FUNCTIONS.items():
        if registered is func:
            return name
    module = getattr(func, "__module__", None)
    qualname = getattr(func, "__qualname__", "")
    if module and qualname and "<" not in qualname:
        ref = f"{module}:{qualname}"
        try:
            if _import_ref(ref) is func:
                return ref
        except ConfigurationError:
            pass
    msg = (
        f"Cannot export {func!r}: register it with register_function() "
        "or use a module-level function"
    )
    raise ConfigurationError(msg)


def _resolve_function(ref: object) -> Callable[[Any], Any]:
    if not isinstance(ref, str):
        msg = f"Function reference must be a string, got {ref!r}"
        raise ConfigurationError(msg)
    if ref in _FUNCTIONS:
        return _FUNCTIONS[ref]
    if ":" not in ref:
        msg = f"Unknown function {ref!r}; register it with register_function()"
        raise ConfigurationError(msg)
    func = _import_ref(ref)
    if not callable(func):
        msg = f"Function reference {ref!r} is not callable"
        raise ConfigurationError(msg)
    return func


# -- Rule variants -----------------------------------------------------------


# Replacements export as the ``replacements`` map of a field map, keyed by
# the text replaced, so they carry no type tag.
@dataclasses.dataclass(frozen=True, slots=True)
class Replace:
    """Substitute every occurrence of *old* by *new*."""

    old: str
    new: str

    def apply(self, value: str) -> str:
        return value.replace(self.old, self.new)


@dataclasses.dataclass(frozen=True, slots=True)
class Remove:
    """Delete every occurrence of *text*."""

    TAG: ClassVar[str] = "remove"
    text: str

    def apply(self, value: str) -> str:
        return value.replace(self.text, "")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": self.text}


@dataclasses.dataclass(frozen=True, slots=True)
class Pattern:
    """A regular expression rule.

    As a removal it deletes every match.  As an exclusion or filter it
    matches a value whose string form contains a match.
    """

    TAG: ClassVar[str] = "pattern"
    regex: re.Pattern[str]

    @classmethod
    def compile(cls, pattern: str, flags: int = 0) -> Pattern:
        """Compile *pattern*.

        :raises ConfigurationError: If *pattern* is not a valid expression.
        """
        try:
            return cls(re.compile(pattern, flags))
        except (re.error, TypeError) as e:
            msg = f"Invalid pattern rule {pattern!r}: {e}"
            raise ConfigurationError(msg) from e

    def apply(self, value: str) -> str:
        return self.regex.sub("", value)

    def matches(self, value: Any) -> bool:
        return self.regex.search(str(value)) is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.TAG, "value": self.regex.pattern}
        flags = int(self.regex.flags & ~re.UNICODE)
        if flags:
            data["flags"] = flags
        return data


@dataclasses.dataclass(frozen=True, slots=True)
class Constant:
    """Overwrite the value unconditionally."""

    TAG: ClassVar[str] = "constant"
    value: Any

    def apply(self, value: Any) -> Any:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": self.value}


@dataclasses.dataclass(frozen=True, slots=True)
class CustomFn:
    """Replace the value by ``func(value)``."""

    TAG: ClassVar[str] = "custom"
    func: Callable[[Any], Any]

    def apply(self, value: Any) -> Any:
        return self.func(value)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": _function_ref(self.func)}


@dataclasses.dataclass(frozen=True, slots=True)
class ExactMatch:
    """Match a value equal to *value*."""

    TAG: ClassVar[str] = "exact"
    value: Any

    def matches(self, value: Any) -> bool:
        return value == self.value

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": self.value}


@dataclasses.dataclass(frozen=True, slots=True)
class SetMembership:
    """Match a value found in *values*."""

    TAG: ClassVar[str] = "in"
    values: tuple[Any, ...]

    def matches(self, value: Any) -> bool:
        return value in self.values

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": list(self.values)}


@dataclasses.dataclass(frozen=True, slots=True)
class Predicate:
    """Match a value for which ``func(value)`` is truthy."""

    TAG: ClassVar[str] = "predicate"
    func: Callable[[Any], Any]

    def matches(self, value: Any) -> bool:
        return bool(self.func(value))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.TAG, "value": _function_ref(self.func)}


TransformRule = Union[Constant, CustomFn]
RemoveRule = Union[Remove, Pattern]
MatchRule = Union[ExactMatch, SetMembership, Predicate, Pattern]


def _as_transform(rule: Any) -> TransformRule:
    if isinstance(rule, (Constant, CustomFn)):
        return rule
    if callable(rule):
        return CustomFn(rule)
    return Constant(rule)


def _as_removal(rule: Any) -> RemoveRule:
    if isinstance(rule, (Remove, Pattern)):
        return rule
    if isinstance(rule, re.Pattern):
        return Pattern(rule)
    return Remove(str(rule))


def _as_matcher(rule: Any) -> MatchRule:
    if isinstance(rule, (ExactMatch, SetMembership, Predicate, Pattern)):
        return rule
    if isinstance(rule, re.Pattern):
        return Pattern(rule)
    if callable(rule):
        return Predicate(rule)
    if isinstance(rule, (list, tuple, set, frozenset)):
        return SetMembership(tuple(rule))
    return ExactMatch(rule)


def _transform_from_dict(data: Any) -> TransformRule:
    tag, value = _split_tagged(data, "transform")
    if tag == Constant.TAG:
        return Constant(value)
    if tag == CustomFn.TAG:
        return CustomFn(_resolve_function(value))
    msg = f"Unknown transform rule type {tag!r}"
    raise ConfigurationError(msg)


def _matcher_from_dict(data: Any) -> MatchRule:
    tag, value = _split_tagged(data, "match")
    if tag == ExactMatch.TAG:
        return ExactMatch(value)
    if tag == SetMembership.TAG:
        if not isinstance(value, (list, tuple)):
            msg = f"Set membership rule needs a list, got {value!r}"
            raise ConfigurationError(msg)
        return SetMembership(tuple(value))
    if tag == Predicate.TAG:
        return Predicate(_resolve_function(value))
    if tag == Pattern.TAG:
        return _pattern_from_dict(data)
    msg = f"Unknown match rule type {tag!r}"
    raise ConfigurationError(msg)


def _removal_from_dict(data: Any) -> RemoveRule:
    if isinstance(data, str):
        return Remove(data)
    tag, value = _split_tagged(data, "removal")
    if tag == Remove.TAG:
        return Remove(str(value))
    if tag == Pattern.TAG:
        return _pattern_from_dict(data)
    msg = f"Unknown removal rule type {tag!r}"
    raise ConfigurationError(msg)


def _pattern_from_dict(data: Mapping[str, Any]) -> Pattern:
    flags = data.get("flags", 0)
    if isinstance(flags, bool) or not isinstance(flags, int):
        msg = f"Pattern rule flags must be an int, got {flags!r}"
        raise ConfigurationError(msg)
    pattern = data["value"]
    if not isinstance(pattern, str):
        msg = f"Pattern rule needs a string, got {pattern!r}"
        raise ConfigurationError(msg)
    return Pattern.compile(pattern, flags)


def _split_tagged(data: Any, what: str) -> tuple[Any, Any]:
    if not isinstance(data, Mapping) or "type" not in data or "value" not in data:
        msg = f"Invalid {what} rule {data!r}: expected a mapping with 'type' and 'value'"
        raise ConfigurationError(msg)
    return data["type"], data["value"]


# -- Coercion ----------------------------------------------------------------

# Leading numeric prefix, as used when a string is cast to a number.
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_LITERAL = re.compile(r"[+-]?(?:0|[1-9]\d*)")
_FLOAT_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_TRUE_WORDS = frozenset({"true", "on", "yes"})
_FALSE_WORDS = frozenset({"false", "off", "no"})


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return 0.0
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(1)) if match else 0.0


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return math.trunc(value) if math.isfinite(value) else 0
    if value is None:
        return 0
    match = _LEADING_NUMBER.match(str(value))
    if match is None:
        return 0
    number = match.group(1)
    if number.lstrip("+-").isdigit():
        return int(number)
    as_float = float(number)
    return math.trunc(as_float) if math.isfinite(as_float) else 0


def _coerce_int(field: FieldMap, value: Any) -> int:
    return _to_int(value)


def _coerce_decimal(field: FieldMap, value: Any) -> float:
    if isinstance(value, str) and field.decimal_separator != DECIMAL_SEP_POINT:
        value = value.replace(field.decimal_separator, DECIMAL_SEP_POINT)
    return _to_float(value)


def _coerce_bool(field: FieldMap, value: Any) -> bool:
    return value in field.true_values


def _coerce_string(field: FieldMap, value: Any) -> str:
    return "" if value is None else str(value)


def _coerce_auto(field: FieldMap, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _INT_LITERAL.fullmatch(text):
        return int(text)
    if _FLOAT_LITERAL.fullmatch(text):
        return float(text)
    if text.lower() in _TRUE_WORDS:
        return True
    if text.lower() in _FALSE_WORDS:
        return False
    return value


_COERCERS: dict[CoercionKind, Callable[[FieldMap, Any], Any]] = {
    CoercionKind.INT: _coerce_int,
    CoercionKind.DECIMAL: _coerce_decimal,
    CoercionKind.BOOL: _coerce_bool,
    CoercionKind.STRING: _coerce_string,
    CoercionKind.AUTO: _coerce_auto,
}

_SERIALIZED_KEYS = frozenset(
    {
        "class",
        "srcField",
        "replacements",
        "transforms",
        "removals",
        "exclusions",
        "filters",
        "decimalSeparator",
        "trueValues",
    }
)


class FieldMap:
    """Transformation, coercion and validation rules for one output column.

    *src_field* is a column index, or a header name that the reader
    resolves to an index when the header row is read.
    """

    def __init__(
        self,
        src_field: int | str,
        kind: CoercionKind | str = CoercionKind.STRING,
        *,
        decimal_separator: str = DECIMAL_SEP_POINT,
        true_values: Iterable[Any] = DEFAULT_TRUE_VALUES,
    ) -> None:
        if isinstance(src_field, bool) or not isinstance(src_field, (int, str)):
            msg = f"Invalid field mapping: srcField must be an int or str, got {src_field!r}"
            raise ConfigurationError(msg)
        if isinstance(src_field, int) and src_field < 0:
            msg = f"Invalid field mapping: negative column index {src_field}"
            raise ConfigurationError(msg)
        try:
            self.kind = CoercionKind(kind)
        except ValueError:
            msg = f"Invalid field mapping: unknown class {kind!r}"
            raise ConfigurationError(msg) from None
        if not isinstance(decimal_separator, str) or not decimal_separator:
            msg = "Invalid field mapping: decimalSeparator must be a non-empty string"
            raise ConfigurationError(msg)
        self.src_field = src_field
        self.decimal_separator = decimal_separator
        self.true_values: tuple[Any, ...] = tuple(true_values)
        self._replacements: dict[str, str] = {}
        self._removals: list[RemoveRule] = []
        self._transforms: list[TransformRule] = []
        self._exclusions: list[MatchRule] = []
        self._filters: list[MatchRule] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.src_field!r}, {self.kind.value!r})"

    # -- rule setters --

    def set_replace_rule(self, old: object, new: object) -> FieldMap:
        """Replace every occurrence of *old* with *new*."""
        self._replacements[str(old)] = str(new)
        return self

    def set_remove_rule(self, remove: object) -> FieldMap:
        """Delete a substring, or each substring of an iterable.

        A compiled regular expression or a :class:`Pattern` deletes every
        match instead.
        """
        if isinstance(remove, str) or not isinstance(remove, Iterable):
            remove = [remove]
        for item in remove:
            rule = _as_removal(item)
            if isinstance(rule, Remove) and not rule.text:
                continue
            if rule not in self._removals:
                self._removals.append(rule)
        return self

    def set_transforms(self, transforms: Iterable[Any]) -> FieldMap:
        """Append transforms: callables are applied, other values overwrite."""
        self._transforms.extend(_as_transform(t) for t in transforms)
        return self

    def set_exclusion_rule(self, rule: Any) -> FieldMap:
        """Flag rows whose coerced value matches *rule*."""
        self._exclusions.append(_as_matcher(rule))
        return self

    def set_filter_rule(self, rule: Any) -> FieldMap:
        """Discard rows whose coerced value matches *rule*."""
        self._filters.append(_as_matcher(rule))
        return self

    # -- rule views --

    @property
    def replacements(self) -> tuple[Replace, ...]:
        return tuple(Replace(old, new) for old, new in self._replacements.items())

    @property
    def removals(self) -> tuple[RemoveRule, ...]:
        return tuple(self._removals)

    @property
    def transforms(self) -> tuple[TransformRule, ...]:
        return tuple(self._transforms)

    @property
    def exclusions(self) -> tuple[MatchRule, ...]:
        return tuple(self._exclusions)

    @property
    def filters(self) -> tuple[MatchRule, ...]:
        return tuple(self._filters)

    # -- evaluation --

    def transform(self, value: Any) -> Any:
        """Run replacements, removals and transforms, then coerce."""
        if isinstance(value, str):
            for rule in self.replacements:
                value = rule.apply(value)
            for rule in self._removals:
                value = rule.apply(value)
        for transform in self._transforms:
            value = transform.apply(value)
        return _COERCERS[self.kind](self, value)

    def should_be_filtered(self, value: Any) -> bool:
        return any(rule.matches(value) for rule in self._filters)

    def should_be_excluded(self, value: Any) -> bool:
        return any(rule.matches(value) for rule in self._exclusions)

    def with_source(self, src_field: int | str) -> FieldMap:
        """Return a copy reading from *src_field*, with the same rules."""
        clone = FieldMap(
            src_field,
            self.kind,
            decimal_separator=self.decimal_separator,
            true_values=self.true_values,
        )
        clone._replacements = dict(self._replacements)
        clone._removals = list(self._removals)
        clone._transforms = list(self._transforms)
        clone._exclusions = list(self._exclusions)
        clone._filters = list(self._filters)
        return clone

    # -- serialization --

    def to_dict(self) -> dict[str, Any]:
        """Export to a plain dict that :meth:`from_dict` accepts.

        :raises ConfigurationError: If a rule holds an anonymous callable.
        """
        data: dict[str, Any] = {
            "class": self.kind.value,
            "srcField": self.src_field,
            "replacements": dict(self._replacements),
            "transforms": [t.to_dict() for t in self._transforms],
            "removals": [r.to_dict() for r in self._removals],
            "exclusions": [m.to_dict() for m in self._exclusions],
            "filters": [m.to_dict() for m in self._filters],
        }
        if self.kind is CoercionKind.DECIMAL:
            data["decimalSeparator"] = self.decimal_separator
        if self.kind is CoercionKind.BOOL:
            data["trueValues"] = list(self.true_values)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> FieldMap:
        """Rebuild a field map from :meth:`to_dict` output.

        :raises ConfigurationError: If *data* is not a valid descriptor.
        """
        if not isinstance(data, Mapping):
            msg = f"Invalid field mapping: expected a mapping, got {type(data).__name__}"
            raise ConfigurationError(msg)
        if "class" not in data:
            msg = "Invalid field mapping: missing 'class'"
            raise ConfigurationError(msg)
        if "srcField" not in data:
            msg = "Invalid field mapping: missing 'srcField'"
            raise ConfigurationError(msg)
        unknown = set(data) - _SERIALIZED_KEYS
        if unknown:
            msg = f"Invalid field mapping: unknown keys {sorted(unknown)}"
            raise ConfigurationError(msg)

        options: dict[str, Any] = {}
        if "decimalSeparator" in data:
            options["decimal_separator"] = data["decimalSeparator"]
        if "trueValues" in data:
            options["true_values"] = _expect(data, "trueValues", list)
        field = cls(data["srcField"], data["class"], **options)

        for old, new in _expect(data, "replacements", Mapping).items():
            field.set_replace_rule(old, new)
        field._removals = [
            _removal_from_dict(r) for r in _expect(data, "removals", list)
        ]
        field._transforms = [
            _transform_from_dict(t) for t in _expect(data, "transforms", list)
        ]
        field._exclusions = [
            _matcher_from_dict(m) for m in _expect(data, "exclusions", list)
        ]
        field._filters = [_matcher_from_dict(m) for m in _expect(data, "filters", list)]
        return field


def _expect(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return kind() if kind is not Mapping else {}
    if not isinstance(value, kind):
        msg = f"Invalid field mapping: {key!r} must be a {kind.__name__}, got {value!r}"
        raise ConfigurationError(msg)
    return value


def int_field(src_field: int | str) -> FieldMap:
    return FieldMap(src_field, CoercionKind.INT)


def decimal_field(
    src_field: int | str, decimal_separator: str = DECIMAL_SEP_POINT
) -> FieldMap:
    return FieldMap(
        src_field, CoercionKind.DECIMAL, decimal_separator=decimal_separator
    )


def bool_field(
    src_field: int | str, true_values: Iterable[Any] = DEFAULT_TRUE_VALUES
) -> FieldMap:
    return FieldMap(src_field, CoercionKind.BOOL, true_values=true_values)


def string_field(src_field: int | str) -> FieldMap:
    return FieldMap(src_field, CoercionKind.STRING)


def auto_field(src_field: int | str) -> FieldMap:
    return FieldMap(src_field, CoercionKind.AUTO)
