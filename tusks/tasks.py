"""
Tusks task mode.

A root declared with `Scope(name, tasks=Tasks())` accepts dotted task names
as a shortcut for nested commands:

    tool remote.add origin    ==    tool remote add origin

Installed on the root (both hidden)
- execute-task: the default tusk. It collects the trailing tokens, rewrites
  the first one into nested command names and dispatches them again with the
  root value already materialized. Without a task it prints the task listing.
- h: prints the arguments of one task (or the listing when none is given).

Dotted names are a token rewrite in front of the regular nested routing; a
name whose first segment is not a command of the root is an
UnknownCommandError.
"""
import difflib

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .dispatch import Success
from .faults import UnknownCommandError
from .links import unit_of
from .schema import LinkGrammar, OperationGrammar, ScopeGrammar
from .utils import *


def expand(name, separator=".", /):
    """
    split a dotted task name into command names ("a.b.c" -> ["a", "b", "c"]).
    """
    if not isinstance(name, str):
        raise TypeError("expand() first argument must be a string")
    return [segment for segment in name.split(separator) if segment]


def listing(grammar, separator=".", max_depth=20, /):
    """
    list the visible tasks of a grammar as (dotted name, help) pairs.

    nested scopes and links are walked down to max_depth segments; hidden
    operations, scopes and links are skipped.
    """
    tasks = []

    def walk(grammar, prefix):
        if len(prefix) >= max_depth:
            return
        for name, operation in grammar.operations.items():
            if not operation.hidden:
                tasks.append((separator.join((*prefix, name)), operation.help))
        for name, scope in grammar.scopes.items():
            if not scope.hidden:
                walk(scope, (*prefix, name))
        for name, link in grammar.links.items():
            if not link.hidden:
                walk(link.grammar, (*prefix, name))

    walk(grammar, ())
    return tasks


def _locate(grammar, segments, task):
    # Walk the dotted segments down to an operation grammar.
    for index, segment in enumerate(segments):
        match grammar.lookup(segment):
            case OperationGrammar() as operation if index == len(segments) - 1:
                return operation
            case ScopeGrammar() as scope:
                grammar = scope
            case LinkGrammar() as link:
                grammar = link.grammar
            case _:
                suggestions = difflib.get_close_matches(segment, grammar.alternatives(), 5)
                raise UnknownCommandError(
                    "unknown task %r" % task,
                    hint="did you mean %r?" % suggestions[0] if suggestions else "run without a task to list them",
                    input=task,
                    suggestions=suggestions,
                    path=".".join(grammar.path),
                )
    raise UnknownCommandError(
        "task %r names a scope, not a task" % task,
        hint="run without a task to list them",
        input=task,
        path=".".join(grammar.path),
    )


class Tasks(metaclass=SpecType):
    """
    Task mode configuration of a root scope.

    - separator: joins the command names of a task (default ".").
    - max_depth: deepest task listed by the listing.
    - colorful: style the listing and the task help.
    """

    __introspectable__ = ("separator", "max_depth", "colorful")

    def __new__(cls, separator=".", /, *, max_depth=20, colorful=True):
        if not isinstance(separator, str):
            raise TypeError(f"{cls.__typename__} 'separator' must be a string")
        elif not separator or separator.isspace():
            raise ValueError(f"{cls.__typename__} 'separator' cannot be empty")
        if not isinstance(max_depth, int) or isinstance(max_depth, bool):
            raise TypeError(f"{cls.__typename__} 'max_depth' must be an integer")
        elif max_depth < 1:
            raise ValueError(f"{cls.__typename__} 'max_depth' must be positive")

        self = super().__new__(cls)
        self._separator = separator
        self._max_depth = max_depth
        self._colorful = bool(colorful)
        return self

    def __install__(self, scope, /):
        """
        register the hidden task tusks on a root scope.
        """
        tasks = self

        def execute_task(context, /, *task):
            """Run a dotted task."""
            unit = unit_of(scope)
            if not task:
                tasks.render(unit.schema)
                return Success(0)

            head, *rest = task
            tokens = [*expand(head, tasks.separator), *rest]
            if not tokens or tokens[0] not in unit.schema.alternatives():
                suggestions = difflib.get_close_matches(head, [name for name, _ in listing(unit.schema, tasks.separator, tasks.max_depth)], 5)
                raise UnknownCommandError(
                    "unknown task %r" % head,
                    hint="did you mean %r?" % suggestions[0] if suggestions else "run without a task to list them",
                    input=head,
                    suggestions=suggestions,
                    path=scope.name,
                )
            return unit.dispatch(unit.parse(tokens), context=context)

        def h(context, task=None, /):
            """Show the arguments of a task."""
            schema = unit_of(scope).schema
            if task is None:
                tasks.render(schema)
            else:
                tasks.describe(_locate(schema, expand(task, tasks.separator), task), task)
            return Success(0)

        scope.tusk(execute_task, default=True, context=True, hidden=True)
        scope.tusk(h, context=True, hidden=True)

    def render(self, grammar, /):
        """
        print the task listing of a grammar.
        """
        table = Table(
            "task", "help",
            title=Text(grammar.name, "bold #00E5FF"),
            box=box.ROUNDED,
            header_style="bold #FF4DA6",
        )
        for name, help in listing(grammar, self._separator, self._max_depth):
            table.add_row(Text(name, "#E6E6F0"), Text(help or "", "italic #9CE19C"))
        Console(no_color=not self._colorful).print(table)

    def describe(self, operation, task, /):
        """
        print the arguments of one task.
        """
        table = Table(
            "argument", "kind", "help",
            title=Text(task, "bold #00E5FF"),
            caption=operation.help,
            box=box.ROUNDED,
            header_style="bold #FF4DA6",
        )
        for declaration in operation.declarations:
            if declaration.hidden:
                continue
            kind = declaration.kind if declaration.required or declaration.kind == "flag" else f"{declaration.kind}, optional"
            table.add_row(
                Text(", ".join(declaration.switches) or declaration.label, "#E6E6F0"),
                Text(kind, "dim"),
                Text(declaration.help or "", "italic #9CE19C"),
            )
        Console(no_color=not self._colorful).print(table)


__all__ = (
    "Tasks",
    "expand",
    "listing",
)
