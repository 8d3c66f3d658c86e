"""
Tusks utilities (internal helpers shared by every layer).

Overview
- UnsetType / Unset
  • Sentinel for "not provided" that stays distinct from None (None is a real
    value for optional arguments).
  • Falsey, printable as "Unset", singleton, sealed.

- coalesce(value, default=None)
  • Replace Unset with a default; every other value (None, 0, "", []) is kept.

- rename(callable, name) / @rename("name")
  • Give generated callables a readable __name__/__qualname__.

- mirror("attr")
  • Read-only property over a private "_attr" field; containers are handed out
    as fresh copies.

- SpecType
  • Metaclass for descriptor classes: derives __typename__, mirrors the fields
    listed in __introspectable__ and provides __repr__/__rich_repr__.

- mglob(pattern)
  • Expand "pkg.**.cli" style module globs into importable module names
    (used by Scope.include to discover linkable trees).

Usage guidance
- Use Unset as a parameter default when None must stay expressible, and
  materialize with coalesce() at the point of use.
"""
import builtins
import functools
import importlib
import operator
import pkgutil
import re
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type for values that were never provided.

    Characteristics
    - Boolean-false, but neither None nor 0.
    - repr() is "Unset".
    - Exactly one instance exists per process; the type cannot be subclassed.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return object, or default when object is the Unset sentinel.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__ and __qualname__ on a callable.

    Forms
    - rename(callable, name) renames in place and returns the callable.
    - rename(name) returns a decorator doing the same later.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _thaw(object):
    # Fresh containers all the way down; anything else is returned untouched.
    if isinstance(object, str | tuple):
        return object
    elif isinstance(object, Sequence):
        return list(map(_thaw, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_thaw, object.values())))
    elif isinstance(object, Set):
        return set(map(_thaw, object))
    return object


def mirror(name, /):
    """
    Build a read-only property exposing the private field "_{name}".

    Mutable containers are copied on every read so the public view can never
    be used to change the descriptor behind it.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _thaw(getattr(self, "_" + name))

    return property(getter)


class SpecType(type):
    """
    Metaclass for the descriptor classes (arguments, tusks, scopes, grammars).

    Responsibilities
    - __typename__: the class name split on camel-case humps, hyphenated and
      lowercased ("OperationGrammar" -> "operation-grammar"). Used in every
      construction-time message.
    - Every name in __introspectable__ becomes a read-only property mirroring
      the private "_name" field.
    - __repr__/__rich_repr__ list the __displayable__ names (falling back to
      __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
            **options,
        )

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({
                    ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
                })"
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        return self


@functools.cache
def _translate_segment(segment):
    # One module-name segment: '*', '?', '[...]', '[!...]' and '\x' escapes.
    parts = []
    index = 0
    while index < len(segment):
        char = segment[index]
        if char == "\\" and index + 1 < len(segment):
            parts.append(re.escape(segment[index + 1]))
            index += 2
            continue
        if char == "*":
            parts.append(r"[^.]*")
        elif char == "?":
            parts.append(r"[^.]")
        elif char == "[" and (close := segment.find("]", index + 1)) != -1:
            body = segment[index + 1:close]
            if body[:1] in ("!", "^"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            index = close
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


@functools.cache
def _compile_glob(pattern):
    head, *tail = pattern.split(".")
    body = _translate_segment(head)
    for segment in tail:
        if segment == "**":
            body += r"(?:\.[A-Za-z_]\w*)*"
        else:
            body += r"\." + _translate_segment(segment)
    return re.compile(body)


def mglob(source, /):
    """
    expand a dot-separated module glob into fully-qualified module names.

    rules
    - '*', '?' and character classes match inside one segment; '**' spans
      zero or more whole segments.
    - the pattern must start with a concrete, importable package segment.
    - a pattern without wildcards is returned as is.
    - results are sorted.
    """
    if not isinstance(source, str):
        raise TypeError("mglob() argument must be a string")
    elif not (source := source.strip()):
        raise ValueError("mglob() argument must be a non-empty string")

    if re.fullmatch(r"(?!\d)\w+(\.(?!\d)\w+)*", source):
        return [source]

    prefixes = []
    for segment in source.split("."):
        if not re.fullmatch(r"(?!\d)\w+", segment):
            break
        prefixes.append(segment)

    if not prefixes:
        raise ValueError("mglob() pattern must start with a concrete package segment")

    try:
        package = importlib.import_module(prefix := ".".join(prefixes))
    except ImportError:
        return []

    pattern = _compile_glob(source)
    matches = {prefix} if pattern.fullmatch(prefix) else set()

    if hasattr(package, "__path__"):
        for metadata in pkgutil.walk_packages(package.__path__, prefix + "."):
            if pattern.fullmatch(metadata.name):
                matches.add(metadata.name)

    return sorted(matches)




__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "mglob",

    # Types
    "UnsetType",
    "SpecType",

    # Constants
    "Unset",
)
