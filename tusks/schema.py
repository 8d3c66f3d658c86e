"""
Tusks schema compiler.

Scope
- verify(scope): the compile-time validation pass over one tree (links are
  verified when their own tree is compiled).
- compile_schema(scope, resolve): the parsing grammar of a tree.

Grammar objects (immutable)
- Declaration: one parsable argument (kind, switches, required, default,
  multiplicity, choices, help, visibility, value hint, type name).
- OperationGrammar: one tusk and its declarations.
- ScopeGrammar: one scope: field declarations, operations, nested scopes,
  links, the default operation and whether trailing tokens are accepted.
- LinkGrammar: an alias wrapping the grammar of a separately compiled tree.
  The foreign grammar is referenced, never copied.

Totality
- Every tusk, argument, child scope and link of the tree appears in the
  grammar; nothing is dropped silently. Hidden elements are marked hidden.
"""
import collections
from types import MappingProxyType

from .faults import *
from .scopes import Parameters
from .utils import *


class Declaration(metaclass=SpecType):
    __introspectable__ = (
        "name",
        "kind",
        "switches",
        "required",
        "default",
        "count",
        "choices",
        "typename",
        "help",
        "hint",
        "hidden",
    )
    __displayable__ = ("name", "kind", "switches", "required", "count")

    def __new__(cls, argument, /):
        self = super().__new__(cls)
        self._name = argument.name
        self._kind = argument.kind
        self._switches = argument.switches
        self._required = argument.kind != "flag" and argument.default is Unset and not argument.optional
        self._default = argument.default
        self._count = argument.count
        self._choices = argument.choices
        self._typename = argument.typename
        self._help = coalesce(argument.help)
        self._hint = coalesce(argument.hint)
        self._hidden = argument.hidden
        return self

    @property
    def multiple(self):
        return self._count is not Unset or self._kind == "remainder"

    @property
    def label(self):
        """
        How the declaration is shown in messages ("--name" or "<name>").
        """
        return self._switches[0] if self._switches else f"<{self._name}>"


class OperationGrammar(metaclass=SpecType):
    __introspectable__ = ("name", "declarations", "default", "help", "hidden")
    __displayable__ = ("name", "declarations", "default")

    def __new__(cls, tusk, /):
        self = super().__new__(cls)
        self._name = tusk.name
        self._declarations = tuple(Declaration(argument) for argument in tusk.arguments.values())
        self._default = tusk.default
        self._help = coalesce(tusk.help)
        self._hidden = tusk.hidden
        return self

    @property
    def remainder(self):
        return next((declaration for declaration in self._declarations if declaration.kind == "remainder"), None)


class LinkGrammar(metaclass=SpecType):
    __introspectable__ = ("alias", "grammar", "help", "hidden")
    __displayable__ = ("alias", "help", "hidden")

    def __new__(cls, link, grammar, /):
        self = super().__new__(cls)
        self._alias = link.alias
        self._grammar = grammar
        self._help = link.help or grammar.help
        self._hidden = link.hidden
        return self

    @property
    def name(self):
        return self._alias


class ScopeGrammar(metaclass=SpecType):
    __introspectable__ = (
        "name",
        "path",
        "fields",
        "operations",
        "scopes",
        "links",
        "default",
        "trailing",
        "help",
        "hidden",
    )
    __displayable__ = ("name", "path", "operations", "scopes", "links", "default", "trailing")

    def __new__(cls, scope, resolve, /):
        self = super().__new__(cls)
        self._name = scope.name
        self._path = scope.path
        self._fields = tuple(Declaration(argument) for argument in scope.parameters.__fields__.values())
        self._operations = MappingProxyType({tusk.name: OperationGrammar(tusk) for tusk in scope.tusks})
        self._scopes = MappingProxyType({child.name: ScopeGrammar(child, resolve) for child in scope.children})
        self._links = MappingProxyType({link.alias: LinkGrammar(link, resolve(link, scope).schema) for link in scope.links})
        self._default = default.name if (default := scope.default) is not None else None
        self._trailing = default is not None and default.remainder is not None
        self._help = coalesce(scope.help)
        self._hidden = scope.hidden
        return self

    def alternatives(self):
        """
        Names selectable after this scope's switches (operations, scopes, links).
        """
        return [*self._operations, *self._scopes, *self._links]

    def lookup(self, name, /):
        """
        Return the operation, scope or link grammar selected by name, or None.
        """
        for table in (self._operations, self._scopes, self._links):
            if name in table:
                return table[name]
        return None


def _identity(scope, **extra):
    return {"path": ".".join(scope.path)} | extra


def _verify_parameters(scope):
    cls = scope.parameters
    where = ".".join(scope.path)

    for defect in cls.__defects__:
        raise MalformedScopeError(
            f"scope {where!r} parameters {cls.__name__!r}: {defect}",
            hint="declare the back-reference exactly once, as super_ = Ancestor()",
            **_identity(scope),
        )

    nested = scope.parent is not None
    if cls.__ancestor__ is Unset and (nested or scope.linkable):
        raise MalformedScopeError(
            f"scope {where!r} parameters {cls.__name__!r} lack the ancestor reference",
            hint="add super_ = Ancestor() to " + ("every nested scope" if nested else "linkable roots"),
            **_identity(scope),
        )
    if cls.__ancestor__ is not Unset and not nested and not scope.linkable:
        raise MalformedScopeError(
            f"root scope {where!r} parameters {cls.__name__!r} declare an ancestor reference",
            hint="a root has no enclosing scope; declare it linkable=True to mount it elsewhere",
            **_identity(scope),
        )
    if nested and (expected := cls.__ancestor__.type) is not Unset and expected is not scope.parent.parameters:
        raise ContextMismatchError(
            f"scope {where!r} ancestor expects {expected.__name__!r} but its parent provides {scope.parent.parameters.__name__!r}",
            hint=f"use Ancestor({scope.parent.parameters.__name__})",
            **_identity(scope),
        )

    switches = {}
    for argument in cls.__fields__.values():
        argument.verify(**_identity(scope))
        if argument.kind in ("positional", "remainder"):
            raise ArgumentShapeError(
                f"scope {where!r} field {argument.name!r} cannot be {argument.kind}",
                hint="scope fields are switches given before the command name",
                **_identity(scope, argument=argument.name),
            )
        _claim(switches, argument, scope, "scope " + repr(where))


def _claim(switches, argument, scope, owner):
    for switch in argument.switches:
        if (other := switches.setdefault(switch, argument.name)) != argument.name:
            raise DuplicateNameError(
                f"{owner} uses {switch!r} for both {other!r} and {argument.name!r}",
                hint="rename one of them or change its short alias",
                **_identity(scope, argument=argument.name),
            )


def _verify_tusk(scope, tusk):
    where = ".".join(scope.path)
    identity = _identity(scope, tusk=tusk.name)

    if tusk.context_type is not Unset and tusk.context_type is not scope.parameters:
        raise ContextMismatchError(
            f"tusk {tusk.name!r} expects {tusk.context_type.__name__!r} but scope {where!r} provides {scope.parameters.__name__!r}",
            hint=f"annotate the first parameter with {scope.parameters.__name__}",
            **identity,
        )

    switches = {}
    remainders = []
    for argument in tusk.arguments.values():
        argument.verify(**identity)
        _claim(switches, argument, scope, f"tusk {tusk.name!r}")
        if argument.remainder:
            remainders.append(argument.name)
    if len(remainders) > 1:
        raise ArgumentShapeError(
            f"tusk {tusk.name!r} has several remainder arguments: {', '.join(map(repr, remainders))}",
            hint="only one argument can collect the remainder",
            **identity,
        )


def verify(scope, /):
    """
    Run the compile-time validation pass over scope and its descendants.

    raises (all SchemaError subclasses)
    - MalformedScopeError: ancestor reference missing, misplaced or misnamed.
    - ContextMismatchError: a handler or ancestor typed with another scope's
      parameters.
    - DuplicateNameError: two tusks/scopes/links sharing a name, or two
      arguments sharing a switch.
    - DuplicateDefaultError: more than one default tusk in a scope.
    - ArgumentShapeError / UnknownNameError: from Argument.verify().
    """
    if not isinstance(scope.parameters, type) or not issubclass(scope.parameters, Parameters):
        raise TypeError("verify() argument must be a scope")

    _verify_parameters(scope)

    names = collections.Counter(
        [tusk.name for tusk in scope.tusks]
        + [child.name for child in scope.children]
        + [link.alias for link in scope.links]
    )
    for name, count in names.items():
        if count > 1:
            raise DuplicateNameError(
                f"scope {'.'.join(scope.path)!r} declares {name!r} {count} times",
                hint="tusks, nested scopes and links of one scope share a namespace",
                **_identity(scope, name=name),
            )

    defaults = [tusk.name for tusk in scope.tusks if tusk.default]
    if len(defaults) > 1:
        raise DuplicateDefaultError(
            f"scope {'.'.join(scope.path)!r} has several default tusks: {', '.join(map(repr, defaults))}",
            hint="mark a single tusk with default=True",
            **_identity(scope),
        )

    for tusk in scope.tusks:
        _verify_tusk(scope, tusk)

    for child in scope.children:
        verify(child)


def compile_schema(scope, /, resolve=Unset):
    """
    Compile the parsing grammar of the tree rooted at scope.

    resolve(link, scope) must return the compiled unit of a link declared in
    scope; it defaults to tusks.links.resolve (compiling and caching the
    target on first use).
    """
    if resolve is Unset:
        from .links import resolve
    verify(scope)
    return ScopeGrammar(scope, resolve)


__all__ = (
    "Declaration",
    "OperationGrammar",
    "ScopeGrammar",
    "LinkGrammar",
    "verify",
    "compile_schema",
)
