r"""
Tusks argument descriptors.

Overview
- Argument: everything known about one parameter of a tusk (or one field of a
  Parameters class): name, type tag, flag/optional/default/positional,
  multiplicity, short alias, help, visibility, value hint, choices, validator
  and the remainder marker.
- Multiplicity: (min, max) bounds for multi-valued arguments, either end may
  be None (unbounded).
- ValueHint: what kind of value an argument expects (used by completion and
  help renderers).
- Converter registry: type tags ("str", "int", "path", ...) mapped onto
  callables; extended with register_converter().

Two validation passes
- Construction (Argument(...)) only checks the Python types of the metadata
  and raises TypeError/ValueError, like every other descriptor.
- Shape (Argument.verify()) checks the combinations that make no sense
  (a flag with a default, a default on an optional argument, ...). It runs
  during compilation, once the argument knows its name and where it lives,
  and raises ArgumentShapeError.

Quick example:
    >>> from tusks.arguments import Argument
    >>> Argument("int", short="n", help="how many times")
    argument(name=Unset, type='int', flag=False, ...)
"""
import builtins
import importlib
import pathlib
import re
from collections.abc import Iterable, Sequence
from enum import StrEnum
from typing import NamedTuple

from .faults import ArgumentShapeError, UnknownNameError
from .utils import *


def _boolean(text, /):
    match text.strip().lower():
        case "1" | "true" | "yes" | "on":
            return True
        case "0" | "false" | "no" | "off":
            return False
    raise ValueError(f"invalid boolean literal: {text!r}")


_converters = {
    "str": str,
    "int": int,
    "float": float,
    "bool": _boolean,
    "path": pathlib.Path,
}


def register_converter(tag, converter, /):
    """
    Register (or replace) the converter used for a type tag.

    Converters receive the raw string and return the converted value; they
    signal bad input by raising ValueError or TypeError.
    """
    if not isinstance(tag, str) or not tag.strip():
        raise TypeError("register_converter() first argument must be a non-empty string")
    if not callable(converter):
        raise TypeError("register_converter() second argument must be callable")
    _converters[tag.strip()] = converter


def lookup_converter(tag, /):
    """
    Return the converter for a type tag, or the tag itself when it is callable.
    """
    if callable(tag):
        return tag
    try:
        return _converters[tag]
    except KeyError:
        raise LookupError(f"unknown type tag {tag!r}") from None


def import_reference(reference, /):
    """
    Import "package.module:attribute" (or "package.module.attribute").

    Raises LookupError when the module or the attribute cannot be found.
    """
    module, separator, attribute = reference.partition(":")
    if not separator:
        module, _, attribute = reference.rpartition(".")
    if not module or not attribute:
        raise LookupError(f"malformed reference {reference!r}")
    try:
        object = importlib.import_module(module)
    except ImportError:
        raise LookupError(f"cannot import module {module!r}") from None
    for part in attribute.split("."):
        try:
            object = getattr(object, part)
        except AttributeError:
            raise LookupError(f"module {module!r} has no attribute {attribute!r}") from None
    return object


class Multiplicity(NamedTuple):
    """
    Inclusive bounds on the number of values; None means unbounded.
    """
    min: int | None = None
    max: int | None = None

    @classmethod
    def of(cls, object, /):
        """
        Normalize an int (exact count), a (min, max) pair or a Multiplicity.
        """
        match object:
            case cls():
                bounds = object
            case builtins.bool():
                raise TypeError("multiplicity must be an integer or a (min, max) pair")
            case builtins.int():
                bounds = cls(object, object)
            case (lower, upper):
                bounds = cls(lower, upper)
            case _:
                raise TypeError("multiplicity must be an integer or a (min, max) pair")
        for bound in bounds:
            if bound is not None and (not isinstance(bound, int) or isinstance(bound, bool)):
                raise TypeError("multiplicity bounds must be integers or None")
            if bound is not None and bound < 0:
                raise ValueError("multiplicity bounds cannot be negative")
        return bounds

    def admits(self, count, /):
        return (self.min is None or count >= self.min) and (self.max is None or count <= self.max)

    def __str__(self):
        if self.min == self.max and self.min is not None:
            return str(self.min)
        return f"{self.min or 0}..{'' if self.max is None else self.max}"


class ValueHint(StrEnum):
    UNKNOWN = "unknown"
    OTHER = "other"
    ANY_PATH = "any-path"
    FILE_PATH = "file-path"
    DIR_PATH = "dir-path"
    EXECUTABLE_PATH = "executable-path"
    COMMAND_NAME = "command-name"
    COMMAND_STRING = "command-string"
    COMMAND_WITH_ARGUMENTS = "command-with-arguments"
    USERNAME = "username"
    HOSTNAME = "hostname"
    URL = "url"
    EMAIL_ADDRESS = "email-address"


def _sanitize_text(cls, metadata, field, /):
    if not isinstance(value := metadata[field], str | Unset):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    elif isinstance(value, str) and not (value := value.strip()):
        raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
    metadata[field] = value


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: type-level validation of Argument metadata (mutates in place).

    - name/help: Unset or non-empty strings (trimmed).
    - type: a registered tag or a callable converter.
    - short: Unset or one alphanumeric character.
    - count: Unset or anything Multiplicity.of() accepts.
    - choices: iterable of strings without duplicates, stored as a tuple.
    - hint: Unset or a ValueHint (or its string value).
    - validator: Unset, a callable or a "module:function" reference.
    """
    _sanitize_text(cls, metadata, "name")
    _sanitize_text(cls, metadata, "help")

    if isinstance(name := metadata["name"], str) and not re.fullmatch(r"(?!\d)\w+", name):
        raise ValueError(f"{cls.__typename__} 'name' must be a valid identifier")

    if isinstance(type := metadata["type"], str):
        if not (type := type.strip()):
            raise ValueError(f"{cls.__typename__} 'type' cannot be empty")
        metadata["type"] = type
    elif not callable(type):
        raise TypeError(f"{cls.__typename__} 'type' must be a type tag or callable")

    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and not re.fullmatch(r"[^\W_]", short):
        raise ValueError(f"{cls.__typename__} 'short' must be a single alphanumeric character")

    if metadata["count"] is not Unset:
        try:
            metadata["count"] = Multiplicity.of(metadata["count"])
        except (TypeError, ValueError) as error:
            raise error.__class__(f"{cls.__typename__} 'count' {error}") from None

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
    sanitized = []
    for choice in choices:
        if not isinstance(choice, str):
            raise TypeError(f"{cls.__typename__} 'choices' must be an iterable of strings")
        if choice in sanitized:
            raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
        sanitized.append(choice)
    metadata["choices"] = tuple(sanitized)

    if isinstance(hint := metadata["hint"], str):
        try:
            metadata["hint"] = ValueHint(hint)
        except ValueError:
            raise ValueError(f"{cls.__typename__} 'hint' must be a value-hint") from None
    elif not isinstance(hint, ValueHint | Unset):
        raise TypeError(f"{cls.__typename__} 'hint' must be a value-hint")

    if not (callable(validator := metadata["validator"]) or isinstance(validator, str | Unset)):
        raise TypeError(f"{cls.__typename__} 'validator' must be callable or a reference string")


class Argument(metaclass=SpecType):
    """
    Descriptor of one named, typed parameter.

    Kinds (decided by the metadata, see `kind`)
    - "flag":       presence-only switch (--name / -s), resolves to a bool.
    - "option":     value-bearing switch (--name VALUE, --name=VALUE, -s VALUE).
    - "positional": value taken from the n-th free token of its operation.
    - "remainder":  receives every unmatched trailing token as a list of str.

    Resolution (see tusks.resolver): flag presence, then supplied value(s)
    (choices, conversion, validator), then default, then None when optional,
    otherwise a MissingArgumentError.

    Properties
    - Every name in __introspectable__ is a read-only attribute.
    """

    __introspectable__ = (
        "name",
        "type",
        "flag",
        "optional",
        "default",
        "positional",
        "count",
        "short",
        "help",
        "hidden",
        "hint",
        "choices",
        "validator",
        "remainder",
    )

    def __new__(
            cls,
            type=Unset,
            /,
            *,
            name=Unset,
            flag=False,
            optional=False,
            default=Unset,
            positional=False,
            count=Unset,
            short=Unset,
            help=Unset,
            hidden=False,
            hint=Unset,
            choices=(),
            validator=Unset,
            remainder=False,
    ):
        metadata = {
            "name": name,
            "type": coalesce(type, "str"),
            "flag": bool(flag),
            "optional": bool(optional),
            "default": default,
            "positional": bool(positional),
            "count": count,
            "short": short,
            "help": help,
            "hidden": bool(hidden),
            "hint": hint,
            "choices": choices,
            "validator": validator,
            "remainder": bool(remainder),
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for field, object in metadata.items():
            setattr(self, "_" + field, object)
        self._typed = type is not Unset
        return self

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        metadata = {field: getattr(self, "_" + field) for field in builtins.type(self).__introspectable__}
        metadata |= overrides
        type = metadata.pop("type")
        if not (self._typed or "type" in overrides):
            type = Unset
        return builtins.type(self)(type, **metadata)

    @property
    def kind(self):
        if self._flag:
            return "flag"
        if self._remainder:
            return "remainder"
        if self._positional:
            return "positional"
        return "option"

    @property
    def multiple(self):
        """
        Whether the argument collects a list of values.
        """
        return self._count is not Unset or self._remainder

    @property
    def typed(self):
        """
        Whether the type was given explicitly (otherwise it is "str").
        """
        return self._typed

    @property
    def typename(self):
        return self._type if isinstance(self._type, str) else getattr(self._type, "__name__", repr(self._type))

    @property
    def converter(self):
        return lookup_converter(self._type)

    @property
    def switches(self):
        """
        The command-line spellings of this argument ("--long-name", "-s").
        """
        if self.kind in ("positional", "remainder") or self._name is Unset:
            return ()
        long = "--" + self._name.replace("_", "-")
        return (long, "-" + self._short) if self._short else (long,)

    def verify(self, **identity):
        """
        Check the metadata combination and resolve references.

        identity (path, tusk, ...) is attached to the raised fault.
        Raises ArgumentShapeError for impossible combinations and
        UnknownNameError for unknown type tags or validator references.
        Returns the argument with its validator resolved to a callable.
        """
        name = coalesce(self._name, "?")
        identity = identity | {"argument": name}

        def fail(message, hint):
            raise ArgumentShapeError(f"argument {name!r} {message}", hint=hint, **identity)

        if self._flag:
            for field in ("optional", "positional", "remainder"):
                if getattr(self, "_" + field):
                    fail(f"is a flag and cannot be {field}", "flags are either present or absent")
            if self._default is not Unset and self._default is not False:
                fail("is a flag and cannot have a default", "flags always default to absent")
            if self._count is not Unset:
                fail("is a flag and cannot take a multiplicity", "flags are either present or absent")
            if self._choices:
                fail("is a flag and cannot have choices", "flags are either present or absent")
        if self._optional and self._default is not Unset:
            fail("cannot be optional and have a default", "optional arguments already have an implicit default")
        if self._remainder and self._count is not Unset:
            fail("collects the remainder and cannot take a multiplicity", "drop the count")
        if (self._positional or self._remainder) and self._short:
            fail("is positional and cannot have a short alias", "drop the short alias")
        if self._count is not Unset and None not in self._count and self._count.min > self._count.max:
            fail(f"has an empty multiplicity {tuple(self._count)!r}", "min must not exceed max")
        if self._choices and self._default is not Unset:
            defaults = self._default if isinstance(self._default, Sequence) and not isinstance(self._default, str) else (self._default,)
            for default in defaults:
                if isinstance(default, str) and default not in self._choices:
                    fail(f"default {default!r} is not one of its choices", "pick a default among: " + ", ".join(self._choices))

        try:
            lookup_converter(self._type)
        except LookupError as error:
            raise UnknownNameError(f"argument {name!r} has an {error}", hint="register it with register_converter()", **identity) from None

        if isinstance(self._validator, str):
            try:
                validator = import_reference(self._validator)
            except LookupError as error:
                raise UnknownNameError(f"argument {name!r} validator: {error}", hint="use 'package.module:function'", **identity) from None
            if not callable(validator):
                raise UnknownNameError(f"argument {name!r} validator {self._validator!r} is not callable", hint="use 'package.module:function'", **identity)
            return self.__replace__(validator=validator)
        return self


__all__ = (
    "Argument",
    "Multiplicity",
    "ValueHint",
    "register_converter",
    "lookup_converter",
    "import_reference",
)
