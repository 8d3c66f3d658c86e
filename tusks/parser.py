"""
Tusks parser: token list -> parsed selection.

The parser walks a ScopeGrammar and produces a closed set of selections:
- ScopeSelection(grammar, values, sub, trailing): the switches of one scope and
  what was selected below it (an operation, a nested scope, a link or None).
- OperationSelection(grammar, values): the raw values of one operation.
- LinkSelection(grammar, tokens): a linked tree was selected; every remaining
  token is handed over unparsed.

Raw values are strings (lists of strings for multi-valued arguments, True for
flags). Absent arguments are simply missing from `values`; conversion,
defaults and choices are the resolver's business. Multiplicity bounds are
checked here and raise MultiplicityError, a ResolutionError.

Accepted spellings
- --name value, --name=value, -s value, -s=value, -svalue
- bare flags (--verbose, -v)
- "--" ends switch parsing inside an operation
- positional arguments, in declaration order
"""
import difflib
import re
from collections import deque
from types import MappingProxyType
from typing import NamedTuple

from .faults import *
from .schema import LinkGrammar, OperationGrammar, ScopeGrammar
from .utils import *


class ScopeSelection(NamedTuple):
    grammar: ScopeGrammar
    values: MappingProxyType
    sub: object = None
    trailing: tuple = ()


class OperationSelection(NamedTuple):
    grammar: OperationGrammar
    values: MappingProxyType


class LinkSelection(NamedTuple):
    grammar: LinkGrammar
    tokens: tuple


def _ordinal(number):
    words = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")
    if 1 <= number <= len(words):
        return words[number - 1]
    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


class _Tokens:
    # A deque that remembers the 1-based position of the last token taken.

    def __init__(self, tokens):
        self.queue = deque(tokens)
        self.position = 0

    def __bool__(self):
        return bool(self.queue)

    def peek(self):
        return self.queue[0]

    def take(self):
        self.position += 1
        return self.queue.popleft()

    def drain(self):
        rest = tuple(self.queue)
        self.position += len(rest)
        self.queue.clear()
        return rest


_number = re.compile(r"-\d+(\.\d+)?")


def _is_switch(token):
    return token.startswith("-") and token != "-" and not _number.fullmatch(token)


def _split(token, tokens, path):
    """
    split a switch token into (switch, inline value or Unset).
    """
    if match := re.fullmatch(r"(?P<switch>--[^\W_][\w-]*)(=(?P<value>.*))?", token, re.DOTALL):
        return match["switch"], match["value"] if match["value"] is not None else Unset
    if match := re.fullmatch(r"(?P<switch>-[^\W_])(=?(?P<value>.+))?", token, re.DOTALL):
        return match["switch"], match["value"] if match["value"] is not None else Unset
    raise MalformedTokenError(
        "bad form of switch %r at %s position" % (token, _ordinal(tokens.position)),
        hint="switches look like --name, --name=value, -s or -s value",
        input=token,
        index=tokens.position,
        path=path,
    )


def _table(declarations):
    return {switch: declaration for declaration in declarations for switch in declaration.switches}


def _consume(table, token, tokens, values, path):
    """
    consume one switch (and its value) into values; False if the switch is unknown.

    the switch token itself has already been taken from tokens.
    """
    switch, inline = _split(token, tokens, path)
    if (declaration := table.get(switch)) is None:
        return False
    position = tokens.position

    if declaration.kind == "flag":
        if inline is not Unset:
            raise FlagAssignmentError(
                "flag %r at %s position cannot have a value" % (switch, _ordinal(position)),
                hint="remove everything from '=' (for example: %s)" % switch,
                input=token,
                argument=declaration.name,
                path=path,
            )
        if declaration.name in values:
            raise DuplicatedSwitchError(
                "flag %r at %s position was already given" % (switch, _ordinal(position)),
                hint="give each flag once",
                input=token,
                argument=declaration.name,
                path=path,
            )
        values[declaration.name] = True
        return True

    if inline is Unset:
        if not tokens or _is_switch(tokens.peek()):
            raise OptionValueRequiredError(
                "option %r at %s position requires a value" % (switch, _ordinal(position)),
                hint="pass it as %s <value> or %s=<value>" % (switch, switch),
                input=token,
                argument=declaration.name,
                path=path,
            )
        inline = tokens.take()

    if declaration.multiple:
        values.setdefault(declaration.name, []).append(inline)
    elif declaration.name in values:
        raise DuplicatedSwitchError(
            "option %r at %s position was already given" % (switch, _ordinal(position)),
            hint="give the option once, it takes a single value",
            input=token,
            argument=declaration.name,
            path=path,
        )
    else:
        values[declaration.name] = inline
    return True


def _unknown_switch(table, token, tokens, path):
    switch = token.partition("=")[0]
    suggestions = difflib.get_close_matches(switch, table.keys(), 5)
    return UnknownSwitchError(
        "unknown switch %r at %s position" % (switch, _ordinal(tokens.position)),
        hint="did you mean %r?" % suggestions[0] if suggestions else "no switch is declared at %r" % (path or "the root"),
        input=switch,
        suggestions=suggestions,
        index=tokens.position,
        path=path,
    )


def _check_counts(declarations, values, path):
    for declaration in declarations:
        if declaration.count is Unset or declaration.name not in values:
            continue
        if not declaration.count.admits(given := len(values[declaration.name])):
            raise MultiplicityError(
                "argument %r takes %s %s but %d %s given" % (
                    declaration.label,
                    declaration.count,
                    "value" if declaration.count == (1, 1) else "values",
                    given,
                    "was" if given == 1 else "were",
                ),
                hint="repeat the argument once per value",
                argument=declaration.name,
                count=tuple(declaration.count),
                given=given,
                path=path,
            )


def _parse_operation(grammar, tokens, path):
    values = {}
    table = _table(grammar.declarations)
    positionals = deque(declaration for declaration in grammar.declarations if declaration.kind == "positional")
    remainder = grammar.remainder
    escaped = False

    while tokens:
        token = tokens.take()
        if not escaped and token == "--":
            escaped = True
            continue
        if not escaped and _is_switch(token):
            if _consume(table, token, tokens, values, path):
                continue
            if remainder is not None:
                values[remainder.name] = [token, *tokens.drain()]
                break
            raise _unknown_switch(table, token, tokens, path)

        if positionals:
            declaration = positionals[0]
            if declaration.multiple:
                bucket = values.setdefault(declaration.name, [])
                bucket.append(token)
                if declaration.count.max is not None and len(bucket) >= declaration.count.max:
                    positionals.popleft()
            else:
                values[declaration.name] = token
                positionals.popleft()
        elif remainder is not None:
            values[remainder.name] = [token, *tokens.drain()]
        else:
            raise UnexpectedPositionalError(
                "unexpected argument %r at %s position" % (token, _ordinal(tokens.position)),
                hint="%r takes no more positional arguments" % grammar.name,
                input=token,
                index=tokens.position,
                path=path,
            )

    _check_counts(grammar.declarations, values, path)
    return OperationSelection(grammar, MappingProxyType(values))


def _parse_scope(grammar, tokens):
    values = {}
    path = ".".join(grammar.path)
    table = _table(grammar.fields)
    sub = None
    trailing = ()

    while tokens:
        token = tokens.take()
        if token == "--" or _is_switch(token):
            if token != "--" and _consume(table, token, tokens, values, path):
                continue
            if grammar.trailing:
                trailing = (token, *tokens.drain())
                break
            if token == "--":
                raise MalformedTokenError(
                    "'--' at %s position must follow a command" % _ordinal(tokens.position),
                    hint="choose one of: " + ", ".join(grammar.alternatives()) if grammar.alternatives() else "nothing can follow here",
                    input=token,
                    index=tokens.position,
                    path=path,
                )
            raise _unknown_switch(table, token, tokens, path)

        match grammar.lookup(token):
            case OperationGrammar() as operation:
                sub = _parse_operation(operation, tokens, f"{path}.{operation.name}")
            case ScopeGrammar() as scope:
                sub = _parse_scope(scope, tokens)
            case LinkGrammar() as link:
                sub = LinkSelection(link, tokens.drain())
            case None if grammar.trailing:
                trailing = (token, *tokens.drain())
            case None:
                suggestions = difflib.get_close_matches(token, grammar.alternatives(), 5)
                raise UnknownCommandError(
                    "unknown command %r at %s position" % (token, _ordinal(tokens.position)),
                    hint="did you mean %r?" % suggestions[0] if suggestions else (
                        "choose one of: " + ", ".join(grammar.alternatives()) if grammar.alternatives() else "%r has no commands" % path
                    ),
                    input=token,
                    suggestions=suggestions,
                    index=tokens.position,
                    path=path,
                )
        break

    _check_counts(grammar.fields, values, path)
    return ScopeSelection(grammar, MappingProxyType(values), sub, trailing)


def parse(grammar, tokens, /):
    """
    parse a token list against a scope grammar.

    returns the root ScopeSelection; raises a ParseError subclass when the
    tokens do not fit the grammar, MultiplicityError when an argument gets
    too few or too many values.
    """
    if not isinstance(grammar, ScopeGrammar):
        raise TypeError("parse() first argument must be a scope grammar")
    if isinstance(tokens, str):
        raise TypeError("parse() second argument must be an iterable of strings")
    tokens = list(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("parse() second argument must be an iterable of strings")
    return _parse_scope(grammar, _Tokens(tokens))


__all__ = (
    "ScopeSelection",
    "OperationSelection",
    "LinkSelection",
    "parse",
)
