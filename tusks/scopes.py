"""
Tusks command tree: parameter scopes, tusks, links and scopes.

Overview
- Parameters
  • Base class of parameter scope descriptors. Subclasses declare their
    fields as Argument specs; the single reserved field `super_ = Ancestor()`
    is the back-reference to the enclosing scope's materialized value.
  • Materialized values are read-only instances of the subclass.

- Tusk
  • One operation: a handler plus its ordered arguments, described from the
    handler signature (annotations and defaults) and the decorator options.

- Link
  • Mounts another, separately compiled tree under an alias.

- Scope
  • A node of the tree: its parameters, tusks, child scopes and links.
    Built with Scope.scope()/Scope.tusk()/Scope.link()/Scope.include() or from
    nested records with Scope.from_mapping().

Nothing here checks the tree as a whole. Structural rules (ancestor
references, duplicate names or defaults, argument shapes, context types) are
enforced by tusks.schema.verify() when the tree is compiled.

Quick example:
    >>> from tusks import Scope, Parameters, Ancestor, Argument
    >>> class Remote(Parameters):
    ...     super_ = Ancestor()
    ...     url = Argument(help="remote url")
    >>> git = Scope("git")
    >>> remote = git.scope("remote", Remote)
    >>> @remote.tusk
    ... def add(context: Remote, name, /): ...
"""
import builtins
import copy
import enum
import importlib
import inspect
import pathlib
import re
import types
import typing
from collections.abc import Iterable, Mapping, Sequence
from inspect import Parameter
from types import MappingProxyType

from .arguments import Argument, Multiplicity, import_reference
from .faults import UnknownNameError
from .utils import *

_tags = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    pathlib.Path: "path",
}


def _infer(annotation, /):
    """
    Internal: translate a type annotation into Argument metadata.

    - X | None / Optional[X] -> optional=True, then X
    - list[X] / tuple[X, ...] -> count=(None, None), then X
    - bool -> flag=True
    - Literal["a", "b"] -> choices
    - Enum subclass -> choices (member names) and a member lookup converter
    - str/int/float/Path -> the registered tag; any other callable is used as is
    """
    inferred = {}
    if annotation is Parameter.empty:
        return inferred

    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        members = [member for member in typing.get_args(annotation) if member is not type(None)]
        if len(members) < len(typing.get_args(annotation)):
            inferred["optional"] = True
        annotation = members[0] if len(members) == 1 else Parameter.empty

    if typing.get_origin(annotation) in (list, tuple, Sequence):
        inferred["count"] = Multiplicity()
        annotation = next(iter(typing.get_args(annotation)), Parameter.empty)

    if annotation is bool and "count" not in inferred:
        inferred["flag"] = True
    elif typing.get_origin(annotation) is typing.Literal:
        values = typing.get_args(annotation)
        inferred["choices"] = tuple(map(str, values))
        inferred["type"] = _tags.get(type(values[0]), "str")
    elif isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        inferred["choices"] = tuple(annotation.__members__)
        inferred["type"] = _member(annotation)
    elif annotation in _tags:
        inferred["type"] = _tags[annotation]
    elif callable(annotation):
        inferred["type"] = annotation
    return inferred


def _member(enumeration, /):
    @rename(enumeration.__name__)
    def convert(text):
        try:
            return enumeration[text]
        except KeyError:
            raise ValueError(f"{text!r} is not a member of {enumeration.__name__}") from None
    return convert


# Constructor defaults of Argument. Inferred metadata only fills fields still at
# these values (or the type when Argument.typed is False).
_pristine = {
    "flag": False,
    "optional": False,
    "count": Unset,
    "choices": (),
}


def _describe(name, annotation, default, kind, /):
    """
    Internal: build the Argument for one handler parameter or class field.
    """
    declared = default if isinstance(default, Argument) else Argument()
    overrides = {"name": name}

    for field, value in _infer(annotation).items():
        if field == "type":
            explicit = declared.typed
        else:
            explicit = getattr(declared, field) != _pristine[field]
        if not explicit:
            overrides[field] = value

    if not isinstance(default, Argument) and default is not Parameter.empty:
        if default is None:
            overrides["optional"] = True
        else:
            overrides["default"] = default
    elif (
        not isinstance(default, Argument)
        and overrides.get("count") is not None
        and not overrides.get("optional")
    ):
        # Lists without a default collect zero or more values.
        overrides["default"] = ()

    if kind is Parameter.POSITIONAL_ONLY:
        overrides["positional"] = True
    elif kind is Parameter.VAR_POSITIONAL:
        overrides["remainder"] = True
        overrides.pop("count", None)
        # Nothing trailing collects an empty list.
        overrides["default"] = ()

    return copy.replace(declared, **overrides)


class Ancestor(metaclass=SpecType):
    """
    The reserved `super_` field of a Parameters subclass.

    Holds, at dispatch time, the materialized value of the enclosing scope
    (by reference). `type` optionally pins the enclosing scope's Parameters
    class; a mismatch is reported when the tree is compiled.
    """

    __introspectable__ = ("type",)

    def __new__(cls, type=Unset, /):
        if not (type is Unset or isinstance(type, builtins.type) and issubclass(type, Parameters)):
            raise TypeError(f"{cls.__typename__} 'type' must be a parameters subclass")
        self = super().__new__(cls)
        self._type = type
        return self


class Parameters:
    """
    Base class for parameter scope descriptors.

    Declaration
        class Remote(Parameters):
            super_ = Ancestor()
            url = Argument(help="remote url")
            verbose: bool = Argument(short="v")

    Collected at class creation
    - __fields__: ordered mapping name -> Argument (inherited fields first).
    - __ancestor__: the Ancestor declaration, or Unset.
    - __defects__: reserved-name misuses found in the body (reported at compile
      time as MalformedScopeError).

    Instances are read-only: `Remote(parent, url="x")`.
    """
    __fields__ = MappingProxyType({})
    __ancestor__ = Unset
    __defects__ = ()

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        fields = dict(cls.__fields__)
        defects = list(cls.__defects__)
        ancestor = cls.__ancestor__

        annotations = inspect.get_annotations(cls, eval_str=True)
        namespace = dict(vars(cls))

        ancestors = [name for name, object in namespace.items() if isinstance(object, Ancestor)]
        for name in ancestors:
            if name != "super_":
                defects.append(f"ancestor reference {name!r} must be named 'super_'")
        if len(ancestors) > 1:
            defects.append("only one ancestor reference is allowed")
        if ancestors:
            ancestor = namespace[ancestors[-1]]
        if "super_" in namespace and not isinstance(namespace["super_"], Ancestor):
            defects.append("'super_' is reserved for the ancestor reference")

        # Argument attributes and annotated attributes, in definition order,
        # then annotation-only fields (required values).
        names = [name for name, object in namespace.items() if isinstance(object, Argument) or name in annotations]
        names += [name for name in annotations if name not in namespace]
        for name in names:
            if name.startswith("_") or name == "super_" or name in ancestors:
                continue
            fields[name] = _describe(name, annotations.get(name, Parameter.empty), namespace.get(name, Parameter.empty), Parameter.KEYWORD_ONLY)
            if name in namespace:
                delattr(cls, name)

        cls.__fields__ = MappingProxyType(fields)
        cls.__ancestor__ = ancestor
        cls.__defects__ = tuple(defects)

    def __init__(self, super_=None, /, **values):
        cls = type(self)
        for name in cls.__fields__:
            try:
                object.__setattr__(self, name, values.pop(name))
            except KeyError:
                raise TypeError(f"{cls.__name__}() missing value for field {name!r}") from None
        if values:
            raise TypeError(f"{cls.__name__}() got unexpected fields: {', '.join(map(repr, values))}")
        if cls.__ancestor__ is not Unset:
            object.__setattr__(self, "super_", super_)
        elif super_ is not None:
            raise TypeError(f"{cls.__name__}() takes no ancestor value")

    def __setattr__(self, name, value, /):
        raise AttributeError(f"{type(self).__name__!r} values are read-only")

    def __delattr__(self, name, /):
        raise AttributeError(f"{type(self).__name__!r} values are read-only")

    def __repr__(self):
        fields = [f"{name}={getattr(self, name)!r}" for name in type(self).__fields__]
        if type(self).__ancestor__ is not Unset:
            fields.append(f"super_={type(self.super_).__name__ if self.super_ is not None else None}")
        return f"{type(self).__name__}({', '.join(fields)})"

    @classmethod
    def synthesize(cls, name, /, *, ancestor, fields=Unset):
        """
        Create a Parameters subclass for a scope that declared none (or whose
        fields came from a nested record).
        """
        namespace = dict(coalesce(fields, {}))
        if ancestor:
            namespace["super_"] = Ancestor()
        title = "".join(part.title() for part in re.split(r"[-_]", name) if part)
        return type(title + "Parameters", (cls,), namespace)


def _sanitize_name(cls, name, field="name", /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    elif not re.fullmatch(r"[^\W_][\w-]*", name := name.strip()):
        raise ValueError(f"{cls.__typename__} {field!r} must be a command name (letters, digits, '-' and '_')")
    return name


def _sanitize_help(cls, help, /):
    if not isinstance(help, str | Unset):
        raise TypeError(f"{cls.__typename__} 'help' must be a string")
    elif isinstance(help, str) and not (help := help.strip()):
        raise ValueError(f"{cls.__typename__} 'help' cannot be empty")
    return coalesce(help)


class Tusk(metaclass=SpecType):
    """
    One operation of a scope.

    The handler signature is the description:
    - an optional first parameter annotated with a Parameters subclass receives
      the nearest scope value (context=True forces it without annotation);
    - every other parameter becomes an Argument, in declaration order;
    - positional-only parameters are positional arguments, *args collects the
      remainder, keyword parameters are switches.

    Decorator options `defaults`, `positional` and `validators` refine the
    described arguments by name.
    """

    __introspectable__ = (
        "name",
        "handler",
        "arguments",
        "default",
        "context",
        "help",
        "hidden",
    )
    __displayable__ = ("name", "arguments", "default", "context", "hidden")

    def __new__(
            cls,
            handler,
            /,
            *,
            name=Unset,
            default=False,
            defaults=Unset,
            positional=(),
            validators=Unset,
            context=Unset,
            help=Unset,
            hidden=False,
    ):
        if not callable(handler):
            raise TypeError(f"{cls.__typename__} 'handler' must be callable")
        try:
            signature = inspect.signature(handler, eval_str=True)
        except (TypeError, ValueError, NameError):
            raise TypeError(f"{cls.__typename__} 'handler' must be an inspectable callable") from None

        if name is Unset:
            name = getattr(handler, "__name__", "").strip("_").replace("_", "-")
        name = _sanitize_name(cls, name)
        if help is Unset and (doc := inspect.getdoc(handler)):
            help = doc.splitlines()[0]

        parameters = list(signature.parameters.values())
        annotation = parameters[0].annotation if parameters else Parameter.empty
        annotated = isinstance(annotation, type) and issubclass(annotation, Parameters)
        context = annotated if context is Unset else bool(context)
        context_type = annotation if context and annotated else Unset
        if context:
            if not parameters or parameters[0].kind not in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
                raise TypeError(f"{cls.__typename__} {name!r} context must be the first positional parameter")
            parameters = parameters[1:]

        arguments = {}
        calling = []
        for parameter in parameters:
            if parameter.kind is Parameter.VAR_KEYWORD:
                raise TypeError(f"{cls.__typename__} {name!r} handler cannot take **{parameter.name}")
            arguments[parameter.name] = _describe(parameter.name, parameter.annotation, parameter.default, parameter.kind)
            calling.append((parameter.name, parameter.kind))

        def refine(option, mapping, field):
            for key, value in mapping:
                if key not in arguments:
                    raise UnknownNameError(
                        f"tusk {name!r} {option} references unknown argument {key!r}",
                        hint="known arguments: " + (", ".join(arguments) or "none"),
                        tusk=name,
                        argument=key,
                    )
                arguments[key] = copy.replace(arguments[key], **{field: value})

        if not isinstance(positional, Iterable) or isinstance(positional, str):
            raise TypeError(f"{cls.__typename__} 'positional' must be an iterable of names")
        refine("defaults", dict(coalesce(defaults, {})).items(), "default")
        refine("positional", ((key, True) for key in positional), "positional")
        refine("validators", dict(coalesce(validators, {})).items(), "validator")

        self = super().__new__(cls)
        self._name = name
        self._handler = handler
        self._arguments = MappingProxyType(arguments)
        self._calling = tuple(calling)
        self._default = bool(default)
        self._context = bool(context)
        self._context_type = context_type
        self._help = _sanitize_help(cls, help)
        self._hidden = bool(hidden)
        return self

    @property
    def context_type(self):
        """
        The Parameters class the handler's first parameter is annotated with
        (Unset when it is not annotated).
        """
        return self._context_type

    @property
    def remainder(self):
        """
        Name of the argument collecting trailing tokens, or None.
        """
        return next((name for name, argument in self._arguments.items() if argument.remainder), None)

    def bind(self, context, values, /):
        """
        Build (args, kwargs) for the handler from resolved values.
        """
        args = [context] if self._context else []
        kwargs = {}
        for name, kind in self._calling:
            match kind:
                case Parameter.POSITIONAL_ONLY | Parameter.POSITIONAL_OR_KEYWORD:
                    args.append(values[name])
                case Parameter.VAR_POSITIONAL:
                    args.extend(values[name])
                case Parameter.KEYWORD_ONLY:
                    kwargs[name] = values[name]
        return args, kwargs

    def __call__(self, *args, **kwargs):
        return self._handler(*args, **kwargs)


class Link(metaclass=SpecType):
    """
    An alias under which a separately compiled tree is mounted.

    target
    - a root Scope declared with linkable=True,
    - a compiled unit (anything implementing __unit__()),
    - a "package.module:attribute" reference, imported when the tree is compiled.
    """

    __introspectable__ = ("alias", "target", "help", "hidden")

    def __new__(cls, alias, target, /, *, help=Unset, hidden=False):
        if not (isinstance(target, Scope | str) or callable(getattr(target, "__unit__", None))):
            raise TypeError(f"{cls.__typename__} 'target' must be a scope, a compiled unit or a reference string")
        self = super().__new__(cls)
        self._alias = _sanitize_name(cls, alias, "alias")
        self._target = target
        self._help = _sanitize_help(cls, help)
        self._hidden = bool(hidden)
        return self

    def resolve(self):
        """
        Return the target object, importing string references.
        """
        if isinstance(self._target, str):
            return import_reference(self._target)
        return self._target


class Scope(metaclass=SpecType):
    """
    A node of the command tree.

    Parameters
    - name: command name of the scope (ignored on the command line for roots).
    - parameters: Parameters subclass; synthesized (empty) when omitted.
    - linkable: a root meant to be mounted under other trees; it carries the
      ancestor reference like any nested scope.
    - parent: enclosing scope (prefer parent.scope(...)).
    - tasks: task mode configuration (roots only), see tusks.tasks.
    - help/hidden: help text and visibility.

    Scopes are sealed once compiled; builder methods then raise RuntimeError.
    """

    __introspectable__ = (
        "name",
        "parameters",
        "tusks",
        "children",
        "links",
        "linkable",
        "parent",
        "tasks",
        "help",
        "hidden",
    )
    __displayable__ = ("name", "path", "linkable", "tusks", "children", "links")

    def __new__(
            cls,
            name,
            /,
            parameters=Unset,
            *,
            linkable=False,
            parent=None,
            tasks=Unset,
            help=Unset,
            hidden=False,
    ):
        if parent is not None and not isinstance(parent, Scope):
            raise TypeError(f"{cls.__typename__} 'parent' must be a scope")
        if parent is not None and linkable:
            raise ValueError(f"{cls.__typename__} only roots can be linkable")
        if tasks is not Unset and not callable(getattr(tasks, "__install__", None)):
            raise TypeError(f"{cls.__typename__} 'tasks' must be a task mode configuration")
        if tasks is not Unset and parent is not None:
            raise ValueError(f"{cls.__typename__} only roots can enable task mode")

        name = _sanitize_name(cls, name)
        if parameters is Unset:
            parameters = Parameters.synthesize(name, ancestor=parent is not None or bool(linkable))
        elif not (isinstance(parameters, type) and issubclass(parameters, Parameters)):
            raise TypeError(f"{cls.__typename__} 'parameters' must be a parameters subclass")

        self = super().__new__(cls)
        self._name = name
        self._parameters = parameters
        self._tusks = []
        self._children = []
        self._links = []
        self._linkable = bool(linkable)
        self._parent = parent
        self._tasks = tasks
        self._help = _sanitize_help(cls, help)
        self._hidden = bool(hidden)
        self._sealed = False

        if parent is not None:
            parent._ensure_open()
            parent._children.append(self)
        if tasks is not Unset:
            tasks.__install__(self)
        return self

    @property
    def path(self):
        """
        Names from the root down to this scope (the root name included).
        """
        return (*self._parent.path, self._name) if self._parent is not None else (self._name,)

    @property
    def root(self):
        return self._parent.root if self._parent is not None else self

    @property
    def default(self):
        """
        The first tusk marked default, or None.
        """
        return next((tusk for tusk in self._tusks if tusk.default), None)

    def _ensure_open(self):
        if self._sealed:
            raise RuntimeError(f"{type(self).__typename__} {'.'.join(self.path)!r} is already compiled")

    def seal(self):
        """
        Freeze this scope and its descendants (called by compile()).
        """
        self._sealed = True
        for child in self._children:
            child.seal()

    def scope(self, name, /, parameters=Unset, **options):
        """
        Create a child scope.
        """
        return Scope(name, parameters, parent=self, **options)

    def tusk(self, handler=Unset, /, **options):
        """
        Register a tusk; usable as @scope.tusk or @scope.tusk(**options).

        Returns the Tusk, which stays callable like the handler it wraps.
        """
        @rename("tusk")
        def wrapper(handler, /):
            self._ensure_open()
            if isinstance(handler, Tusk):
                tusk = handler if not options else Tusk(handler.handler, **options)
            else:
                tusk = Tusk(handler, **options)
            self._tusks.append(tusk)
            return tusk

        return wrapper(handler) if handler is not Unset else wrapper

    def link(self, alias, target, /, **options):
        """
        Mount a separately compiled tree (or a reference to one) under alias.
        """
        self._ensure_open()
        self._links.append(link := Link(alias, target, **options))
        return link

    def include(self, source, /):
        """
        Link every linkable root scope found in the modules matching a module glob.

        Each discovered scope is mounted under its own name. Scopes already
        part of a tree (non-roots) and non-linkable roots are ignored.
        """
        if not isinstance(source, str):
            raise TypeError("include() argument must be a string")

        linked = {id(link.target) for link in self._links}
        for module in mglob(source):
            try:
                module = importlib.import_module(module)
            except ImportError:
                raise TypeError(f"unable to import module {module!r}") from None
            for _, object in inspect.getmembers(module, lambda member: isinstance(member, Scope)):
                if object.parent is not None or not object.linkable or object is self.root:
                    continue
                if id(object) not in linked:
                    linked.add(id(object))
                    self.link(object.name, object)

    @classmethod
    def from_mapping(cls, record, handlers=Unset, /, *, parent=None):
        """
        Build a tree from nested records.

        Record keys
        - name (required), help, hidden, linkable (roots only)
        - parameters: Parameters subclass, or a mapping of field name to an
          Argument or to Argument keyword options
        - tusks: list of records with handler (callable, a key of `handlers`,
          or a "module:function" reference) plus the Tusk options
        - scopes: list of nested scope records
        - links: list of records with alias, target, help, hidden

        Unknown keys raise UnknownNameError.
        """
        handlers = coalesce(handlers, {})

        def check(record, allowed, where):
            if not isinstance(record, Mapping):
                raise TypeError(f"{where} record must be a mapping")
            if unknown := sorted(set(record) - allowed):
                raise UnknownNameError(
                    f"{where} record has unknown {'key' if len(unknown) == 1 else 'keys'} {', '.join(map(repr, unknown))}",
                    hint="allowed keys: " + ", ".join(sorted(allowed)),
                )

        check(record, {"name", "parameters", "tusks", "scopes", "links", "linkable", "help", "hidden"}, "scope")
        if "name" not in record:
            raise TypeError("scope record must have a 'name'")

        parameters = record.get("parameters", Unset)
        if isinstance(parameters, Mapping):
            fields = {}
            for field, entry in parameters.items():
                if not isinstance(entry, Argument):
                    entry = dict(entry)
                    entry = Argument(entry.pop("type", Unset), **entry)
                fields[field] = entry
            parameters = Parameters.synthesize(
                record["name"],
                ancestor=parent is not None or bool(record.get("linkable", False)),
                fields=fields,
            )

        self = cls(
            record["name"],
            parameters,
            linkable=record.get("linkable", False),
            parent=parent,
            help=record.get("help", Unset),
            hidden=record.get("hidden", False),
        )

        for entry in record.get("tusks", ()):
            check(entry, {"handler", "name", "default", "defaults", "positional", "validators", "context", "help", "hidden"}, "tusk")
            options = dict(entry)
            handler = options.pop("handler")
            if isinstance(handler, str):
                try:
                    handler = handlers[handler] if handler in handlers else import_reference(handler)
                except LookupError as error:
                    raise UnknownNameError(f"tusk handler {handler!r} cannot be found: {error}", hint="pass it in the handlers mapping") from None
            self.tusk(handler, **options)

        for entry in record.get("scopes", ()):
            cls.from_mapping(entry, handlers, parent=self)

        for entry in record.get("links", ()):
            check(entry, {"alias", "target", "help", "hidden"}, "link")
            options = dict(entry)
            self.link(options.pop("alias"), options.pop("target"), **options)

        return self


__all__ = (
    "Parameters",
    "Ancestor",
    "Tusk",
    "Link",
    "Scope",
)
