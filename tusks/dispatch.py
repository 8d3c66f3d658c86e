"""
Tusks dispatch compiler and results.

Results
- Success(code=None): a tusk ran; `code` is the optional status it returned.
- NothingMatched: nothing was selected and the scope has no default tusk.
  Not an error; invoke() reports it with a NothingToDoWarning.

Branches (built once per compiled tree, immutable afterwards)
- ScopeBranch: materializes the scope's Parameters value (its `super_` bound
  to the enclosing value, by reference) and routes the sub-selection.
- TuskBranch: resolves the tusk's arguments in declaration order and calls
  the handler, context first when it wants one.
- LinkBranch: hands the remaining tokens and the current value over to the
  linked unit.

Handler results map onto results: None -> Success(), int -> Success(code),
a Result -> itself. Anything else is a TypeError.
"""
import functools

from .faults import *
from .parser import LinkSelection, OperationSelection, ScopeSelection
from .resolver import resolve_all
from .schema import verify
from .utils import *


class Result:
    """
    base class of dispatch outcomes.
    """
    __slots__ = ()

    @property
    def exitcode(self):
        return 0


class Success(Result):
    __slots__ = ("code",)

    def __init__(self, code=None, /):
        if code is not None and (not isinstance(code, int) or isinstance(code, bool)):
            raise TypeError("Success() argument must be an integer")
        if code is not None and not 0 <= code <= 255:
            raise ValueError("Success() argument must be within 0..255")
        object.__setattr__(self, "code", code)

    def __setattr__(self, name, value, /):
        raise AttributeError("results are read-only")

    @property
    def exitcode(self):
        return self.code or 0

    def __eq__(self, other):
        if not isinstance(other, Success):
            return NotImplemented
        return self.code == other.code

    def __hash__(self):
        return hash((Success, self.code))

    def __repr__(self):
        return "Success()" if self.code is None else f"Success({self.code})"


class NothingMatchedType(Result):
    __slots__ = ()

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __repr__(self):
        return "NothingMatched"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'NothingMatchedType' is not an acceptable base type")


NothingMatched = NothingMatchedType()


def _outcome(value, tusk):
    match value:
        case None:
            return Success()
        case Result():
            return value
        case bool():
            raise TypeError(f"tusk {tusk.name!r} returned a bool; return None, an int or a result")
        case int():
            return Success(value)
    raise TypeError(f"tusk {tusk.name!r} returned {type(value).__name__!r}; return None, an int or a result")


def _identity(scope, **extra):
    return {"path": ".".join(scope.path)} | extra


class TuskBranch:
    __slots__ = ("tusk", "arguments", "identity")

    def __init__(self, scope, tusk, /):
        self.tusk = tusk
        self.identity = _identity(scope, tusk=tusk.name)
        self.arguments = {name: argument.verify(**self.identity) for name, argument in tusk.arguments.items()}

    def __call__(self, context, values, trailing=(), /):
        if trailing and (remainder := self.tusk.remainder) is not None:
            values = dict(values) | {remainder: list(trailing)}
        resolved = resolve_all(self.arguments, values, **self.identity)
        args, kwargs = self.tusk.bind(context, resolved)
        return _outcome(self.tusk.handler(*args, **kwargs), self.tusk)


class LinkBranch:
    __slots__ = ("alias", "unit")

    def __init__(self, link, unit, /):
        self.alias = link.alias
        self.unit = unit

    def __call__(self, tokens, context, /):
        return self.unit.forward(tokens, context)


class ScopeBranch:
    __slots__ = ("scope", "fields", "identity", "tusks", "scopes", "links", "default")

    def __init__(self, scope, resolve, /):
        self.scope = scope
        self.identity = _identity(scope)
        self.fields = {name: argument.verify(**self.identity) for name, argument in scope.parameters.__fields__.items()}
        self.tusks = {tusk.name: TuskBranch(scope, tusk) for tusk in scope.tusks}
        self.scopes = {child.name: ScopeBranch(child, resolve) for child in scope.children}
        self.links = {link.alias: LinkBranch(link, resolve(link, scope)) for link in scope.links}
        self.default = self.tusks[default.name] if (default := scope.default) is not None else None

    def materialize(self, values, ancestor=None, /):
        """
        build this scope's read-only Parameters value.
        """
        resolved = resolve_all(self.fields, values, **self.identity)
        parameters = self.scope.parameters
        if parameters.__ancestor__ is Unset:
            return parameters(**resolved)
        return parameters(ancestor, **resolved)

    def _find(self, table, name):
        try:
            return table[name]
        except KeyError:
            raise UnknownCommandError(
                f"unknown command {name!r} in {self.identity['path']!r}",
                hint="the selection does not belong to this tree",
                input=name,
                **self.identity,
            ) from None

    def __call__(self, selection, ancestor=None, /, context=Unset):
        if context is Unset:
            context = self.materialize(selection.values, ancestor)

        match selection.sub:
            case OperationSelection(grammar=grammar, values=values):
                return self._find(self.tusks, grammar.name)(context, values)
            case ScopeSelection(grammar=grammar) as sub:
                return self._find(self.scopes, grammar.name)(sub, context)
            case LinkSelection(grammar=grammar, tokens=tokens):
                return self._find(self.links, grammar.alias)(tokens, context)
            case None if self.default is not None:
                return self.default(context, {}, selection.trailing)
            case None:
                return NothingMatched
            case other:
                raise TypeError(f"cannot dispatch {type(other).__name__!r}")


def compile_dispatch(scope, /, resolve=Unset):
    """
    Compile the dispatcher of the tree rooted at scope.

    resolve(link, scope) must return the compiled unit of a link declared in
    scope; it defaults to tusks.links.resolve.
    """
    if resolve is Unset:
        from .links import resolve
    verify(scope)
    return ScopeBranch(scope, resolve)


__all__ = (
    "Result",
    "Success",
    "NothingMatched",
    "NothingMatchedType",
    "compile_dispatch",
)
