"""
Tusks compiled units, link resolution and invocation.

Overview
- compile(scope, **runtime) -> Unit
  • Verifies the tree, resolves its links, compiles the schema and the
    dispatcher from the same tree and seals it.
- Unit
  • parse(tokens) -> ScopeSelection
  • dispatch(selection, ancestor=None) -> Result
  • forward(tokens, ancestor) -> Result: the cross-unit entry point used by
    links (parse with this unit's own schema, then dispatch).
- resolve(link, scope) -> Unit
  • The unit mounted by a link: compiled on first use, then reused from a
    process-wide registry. The linked tree is never copied into its host.
- invoke(object, prompt) -> Result
  • Tokenizes (argv, shell-like string or iterable), parses, dispatches and
    surfaces faults through trigger().

Link rules (raised while compiling the host tree)
- LinkTargetError: unresolvable reference, non-root or non-linkable target.
- ContextMismatchError: the target's ancestor is typed with another scope's
  parameters.
- LinkCycleError: the target is already being compiled further up the link
  chain (a tree linking itself, directly or not).
"""
import shlex
import sys
from collections.abc import Iterable

from .dispatch import NothingMatched, compile_dispatch
from .faults import *
from .parser import ScopeSelection, parse
from .schema import compile_schema
from .scopes import Scope
from .utils import *

_registry = {}


class Unit(metaclass=SpecType):
    """
    A compiled tree: its schema, its dispatcher and its runtime options.

    Runtime options
    - shell: faults are printed (and errors exit) instead of being raised.
    - fancy: faults are rendered in panels.
    - colorful: faults are styled.
    """

    __introspectable__ = ("scope", "schema", "shell", "fancy", "colorful")
    __displayable__ = ("name", "shell", "fancy", "colorful")

    def __new__(cls, scope, schema, dispatcher, /, *, shell=False, fancy=False, colorful=True):
        self = super().__new__(cls)
        self._scope = scope
        self._schema = schema
        self._dispatcher = dispatcher
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        return self

    @property
    def name(self):
        return self._scope.name

    def __unit__(self):
        return self

    def parse(self, tokens, /):
        return parse(self._schema, tokens)

    def dispatch(self, selection, /, ancestor=None, *, context=Unset):
        """
        Dispatch a selection parsed with this unit's schema.

        ancestor is the enclosing value when the unit is mounted through a
        link; context replaces the root value (used to re-enter a tree from
        one of its own tusks).
        """
        if not isinstance(selection, ScopeSelection) or selection.grammar is not self._schema:
            raise TypeError("dispatch() argument must be a selection parsed by this unit")
        return self._dispatcher(selection, ancestor, context=context)

    def forward(self, tokens, ancestor, /):
        return self.dispatch(self.parse(tokens), ancestor)

    def __invoke__(self, prompt=Unset):
        """
        Parse and dispatch a prompt, surfacing faults with this unit's options.

        prompt
        - Unset: sys.argv[1:]
        - str: split with shlex.split
        - Iterable[str]: used as is (empty tokens are kept as values)
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(item, str) for item in tokens):
                raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")

        options = {
            "tool": self,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
        }
        try:
            result = self.dispatch(self.parse(tokens))
        except (CommandException, CommandExit) as fault:
            trigger(fault, **options)
            return Unset

        if result is NothingMatched:
            trigger(NothingToDoWarning(
                "nothing to do for %r" % " ".join((self.name, *tokens)),
                hint="choose one of: " + ", ".join(self._schema.alternatives()) if self._schema.alternatives() else "the tree declares no tusks",
                input=tokens,
            ), **options)
        return result

    def __call__(self, prompt=Unset, /):
        return invoke(self, prompt)


def _compile(scope, stack, options):
    if not isinstance(scope, Scope):
        raise TypeError("compile() argument must be a scope")
    if scope.parent is not None:
        raise ValueError(f"compile() argument must be a root scope, {'.'.join(scope.path)!r} is nested")

    stack = (*stack, scope)
    units = {}

    def resolve_local(link, owner):
        if link not in units:
            units[link] = _resolve(link, owner, stack, options)
        return units[link]

    schema = compile_schema(scope, resolve_local)
    dispatcher = compile_dispatch(scope, resolve_local)
    scope.seal()
    _registry[scope] = unit = Unit(scope, schema, dispatcher, **options)
    return unit


def _resolve(link, owner, stack, options):
    identity = {"path": ".".join(owner.path), "link": link.alias}

    try:
        target = link.resolve()
    except LookupError as error:
        raise LinkTargetError(
            f"link {link.alias!r} cannot be resolved: {error}",
            hint="use 'package.module:attribute'",
            **identity,
        ) from None

    if callable(getattr(target, "__unit__", None)):
        unit = target.__unit__()
        scope = unit.scope
    elif isinstance(target, Scope):
        unit = Unset
        scope = target
    else:
        raise LinkTargetError(
            f"link {link.alias!r} target {type(target).__name__!r} is neither a scope nor a compiled unit",
            hint="link a root scope declared with linkable=True",
            **identity,
        )

    if scope.parent is not None:
        raise LinkTargetError(
            f"link {link.alias!r} targets the nested scope {'.'.join(scope.path)!r}",
            hint="only root scopes can be linked",
            **identity,
        )
    if not scope.linkable:
        raise LinkTargetError(
            f"link {link.alias!r} targets {scope.name!r}, which is not linkable",
            hint=f"declare it as Scope({scope.name!r}, linkable=True)",
            **identity,
        )
    if scope in stack:
        chain = " -> ".join(item.name for item in (*stack[stack.index(scope):], scope))
        raise LinkCycleError(
            f"link {link.alias!r} closes the cycle {chain}",
            hint="a tree cannot be mounted inside itself",
            **identity,
        )
    ancestor = scope.parameters.__ancestor__
    if ancestor is not Unset and (expected := ancestor.type) is not Unset and expected is not owner.parameters:
        raise ContextMismatchError(
            f"link {link.alias!r} target {scope.name!r} expects {expected.__name__!r} but {'.'.join(owner.path)!r} provides {owner.parameters.__name__!r}",
            hint=f"mount it under a scope using {expected.__name__}",
            **identity,
        )

    if unit is Unset:
        unit = _registry.get(scope) or _compile(scope, stack, options)
    return unit


def resolve(link, scope, /):
    """
    Resolve a link declared in scope to its compiled unit.
    """
    return _resolve(link, scope, (scope.root,), {})


def compile(scope, /, *, shell=False, fancy=False, colorful=True):
    """
    Compile a root scope into a Unit.

    Compiling the same tree again yields an equivalent unit (same schema
    shape, same outcomes). Linked trees are compiled once and shared.
    Raises a SchemaError subclass when the tree is invalid; nothing is
    returned in that case.
    """
    return _compile(scope, (), {"shell": shell, "fancy": fancy, "colorful": colorful})


def unit_of(scope, /):
    """
    The registered unit of a root scope, compiling it on first use.
    """
    try:
        return _registry[scope]
    except KeyError:
        return compile(scope)


def invoke(object, prompt=Unset, /):
    """
    Run a unit (or a root scope, compiled on the fly) with a prompt.

    Returns the dispatch Result. Faults are raised, or printed in shell mode.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)
    if isinstance(object, Scope):
        return invoke(unit_of(object), prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method")


__all__ = (
    "Unit",
    "compile",
    "resolve",
    "unit_of",
    "invoke",
)
