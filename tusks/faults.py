"""
Tusks faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by the phase
  that raises it (schema build, parsing, argument resolution, warnings).
- CommandException / CommandWarning: base types carrying a message plus
  read-only options, rendering themselves with rich.
- SchemaError / ParseError / ResolutionError: the three error families.
  Schema errors abort compilation; parse and resolution errors abort one
  dispatch.
- trigger(): single entry point to surface a fault (respects shell/deferred/
  fancy/colorful runtime options).
- getdoc(): optional per-code documentation provided by the host program.

Options
- Every fault is constructed with its identity options (path, tusk, argument,
  input, choices, ...) and inherits its code/title from the class. Runtime
  options (tool, shell, fancy, colorful, deferred) are merged in by trigger()
  through copy.replace().

Integration
- In non-shell mode errors are raised and warnings go through warnings.warn.
- In shell mode faults are printed on stderr; errors then exit with status 1.
- Hosts may set __styles__, __codes__, __prog__ and __docs__ in __main__.
"""
import copy
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - schema build (10xxx): raised by compile(); the tree is rejected as a whole.
    - routing/parsing (111xx): the token list does not fit the grammar.
    - argument resolution (113xx): a value was found (or not) but is unusable.
    - warnings (12xxx): non-fatal outcomes.

    normalize() lets the host remap codes to its own labels.
    """
    # --- schema build errors (10xxx) ---
    MALFORMED_SCOPE             = 10101
    DUPLICATE_DEFAULT           = 10102
    DUPLICATE_NAME              = 10103
    CONTEXT_MISMATCH            = 10104
    ARGUMENT_SHAPE              = 10111
    UNKNOWN_NAME                = 10112
    LINK_CYCLE                  = 10121
    LINK_TARGET                 = 10122

    # --- routing errors (111xx) ---
    UNKNOWN_COMMAND             = 11101

    # --- switch/positional errors (111xx) ---
    MALFORMED_TOKEN             = 11111
    UNKNOWN_SWITCH              = 11112
    FLAG_ASSIGNMENT             = 11113
    DUPLICATED_SWITCH           = 11115
    OPTION_VALUE_REQUIRED       = 11117
    UNEXPECTED_POSITIONAL       = 11121

    # --- argument resolution errors (113xx) ---
    MISSING_ARGUMENT            = 11301
    INVALID_CHOICE              = 11302
    CONVERSION                  = 11303
    VALIDATOR                   = 11304
    MULTIPLICITY                = 11305

    # --- warnings (12xxx) ---
    NOTHING_TO_DO               = 12101

    def normalize(self):
        """
        return a host-normalized string for this code.

        __main__.__codes__ may map codes to friendlier labels; otherwise the
        numeric value is used.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, /):
    # Shared rich layout of one fault (header line, then the message and its hint).
    main = __import__("__main__")
    options = fault.options

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", True)
    fancy = options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    tool = options.get("tool")
    prog = getattr(main, "__prog__", getattr(tool, "name", "tusks"))
    code = options["code"] if isinstance(options["code"], FaultCode) else None

    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " — ",
        text(code.normalize() if code else "-", "code"),
        " | ",
        text(options["title"].title(), "title"),
        " ]"
    )
    body = [text(fault.message, "message")]
    if hint := options.get("hint"):
        body.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
    if docs := options.get("docs", code and getdoc(code)):
        body.append(text(docs, "docs"))

    if fancy:
        try:
            width = int((console.width - 4) * options["ratio"])
        except KeyError:
            width = None
        return Panel(Group(*body), title=header, title_align="left", width=width)

    return Group(header, *body)


class CommandException(Exception):
    """
    base class of every tusks error.

    subclasses pin `code` and `title`; instances may override both through
    options. str(error) is the message.
    """
    code = Unset
    title = "command error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType({"code": type(self).code, "title": type(self).title} | options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else self.options["title"]

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
            "docs": "underline #00E5FF dim",
        })

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SchemaError(CommandException):
    title = "invalid command tree"


class MalformedScopeError(SchemaError):
    code = FaultCode.MALFORMED_SCOPE
    title = "malformed scope"
class DuplicateDefaultError(SchemaError):
    code = FaultCode.DUPLICATE_DEFAULT
    title = "duplicate default"
class DuplicateNameError(SchemaError):
    code = FaultCode.DUPLICATE_NAME
    title = "duplicate name"
class ContextMismatchError(SchemaError):
    code = FaultCode.CONTEXT_MISMATCH
    title = "context mismatch"
class ArgumentShapeError(SchemaError):
    code = FaultCode.ARGUMENT_SHAPE
    title = "invalid argument"
class UnknownNameError(SchemaError):
    code = FaultCode.UNKNOWN_NAME
    title = "unknown name"
class LinkCycleError(SchemaError):
    code = FaultCode.LINK_CYCLE
    title = "link cycle"
class LinkTargetError(SchemaError):
    code = FaultCode.LINK_TARGET
    title = "invalid link"


class ParseError(CommandException):
    title = "invalid command line"


class UnknownCommandError(ParseError):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"
class MalformedTokenError(ParseError):
    code = FaultCode.MALFORMED_TOKEN
    title = "malformed token"
class UnknownSwitchError(ParseError):
    code = FaultCode.UNKNOWN_SWITCH
    title = "unknown switch"
class FlagAssignmentError(ParseError):
    code = FaultCode.FLAG_ASSIGNMENT
    title = "flag assignment"
class DuplicatedSwitchError(ParseError):
    code = FaultCode.DUPLICATED_SWITCH
    title = "duplicated switch"
class OptionValueRequiredError(ParseError):
    code = FaultCode.OPTION_VALUE_REQUIRED
    title = "missing value"
class UnexpectedPositionalError(ParseError):
    code = FaultCode.UNEXPECTED_POSITIONAL
    title = "unexpected positional"


class ResolutionError(CommandException):
    title = "invalid argument value"


class MissingArgumentError(ResolutionError):
    code = FaultCode.MISSING_ARGUMENT
    title = "missing argument"
class InvalidChoiceError(ResolutionError):
    code = FaultCode.INVALID_CHOICE
    title = "invalid choice"
class ConversionError(ResolutionError):
    code = FaultCode.CONVERSION
    title = "conversion failed"
class ValidatorError(ResolutionError):
    code = FaultCode.VALIDATOR
    title = "validation failed"
class MultiplicityError(ResolutionError):
    code = FaultCode.MULTIPLICITY
    title = "wrong number of values"


class CommandWarning(ABC, Warning):
    """
    base class of every tusks warning (non-fatal, never exits).
    """
    code = Unset
    title = "command warning"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType({"code": type(self).code, "title": type(self).title} | options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else self.options["title"]

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
            "docs": "underline #FFB400 dim",
        })

    def __trigger__(self):
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=3)
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class NothingToDoWarning(CommandWarning):
    code = FaultCode.NOTHING_TO_DO
    title = "nothing to do"


class CommandExit(ExceptionGroup[CommandException]):
    """
    several resolution errors collected from one operation.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        style = (dict(title="bold #FF4DA6") | getattr(main, "__styles__", {})).get("title", "")

        prog = getattr(main, "__prog__", getattr(self.options.get("tool"), "name", "tusks"))
        header = Text.assemble("[ ", prog, " — ", Text(self.message.title(), style if colorful else ""), " ]")

        renders = [copy.replace(exception, **self.options, ratio=2/3) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ (see the base classes).
    - options are merged into a copy of the fault before it is triggered.
    - errors raise in non-shell mode; in shell mode they are printed and the
      process exits with status 1 (unless deferred).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation for a fault code, read from __main__.__docs__.

    returns None when the host provides nothing for the code.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "SchemaError",
    "MalformedScopeError",
    "DuplicateDefaultError",
    "DuplicateNameError",
    "ContextMismatchError",
    "ArgumentShapeError",
    "UnknownNameError",
    "LinkCycleError",
    "LinkTargetError",
    "ParseError",
    "UnknownCommandError",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "DuplicatedSwitchError",
    "OptionValueRequiredError",
    "UnexpectedPositionalError",
    "MultiplicityError",
    "ResolutionError",
    "MissingArgumentError",
    "InvalidChoiceError",
    "ConversionError",
    "ValidatorError",
    "CommandWarning",
    "NothingToDoWarning",
    "CommandExit",
    "trigger",
    "getdoc",
)
