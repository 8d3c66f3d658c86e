"""
Tusks runtime argument resolver.

resolve(argument, raw) turns the raw value found by the parser (or its
absence) into the value handed to a handler or stored in a parameter scope:

1. flag      -> True when present, False otherwise;
2. supplied  -> choices are checked on the raw string, then the type
                converter runs (ConversionError), then the validator
                (ValidatorError);
3. default   -> converted like a supplied value when it is a string (each
                string of a sequence default); other defaults are returned
                as they are;
4. optional  -> None;
5. otherwise -> MissingArgumentError.

Multi-valued arguments resolve to lists. Every fault names the argument.
"""
from .arguments import import_reference
from .faults import *
from .utils import *


def _label(argument):
    return argument.switches[0] if argument.switches else f"<{argument.name}>"


def _convert(argument, text, identity, /, *, validate=True):
    if argument.choices and text not in argument.choices:
        raise InvalidChoiceError(
            "argument %r got %r, allowed values are: %s" % (_label(argument), text, ", ".join(argument.choices)),
            hint="pick one of: " + ", ".join(argument.choices),
            input=text,
            choices=argument.choices,
            **identity,
        )

    try:
        value = argument.converter(text)
    except (ValueError, TypeError, ArithmeticError) as error:
        raise ConversionError(
            "argument %r expects %s, got %r" % (_label(argument), argument.typename, text),
            hint=str(error) or f"pass a valid {argument.typename}",
            input=text,
            **identity,
        ) from None

    if not validate or (validator := argument.validator) is Unset:
        return value
    if isinstance(validator, str):
        validator = import_reference(validator)

    try:
        verdict = validator(value)
    except (ValueError, TypeError) as error:
        raise ValidatorError(
            "argument %r rejected %r: %s" % (_label(argument), text, error),
            hint=str(error),
            input=text,
            **identity,
        ) from None
    if verdict is False:
        raise ValidatorError(
            "argument %r rejected %r" % (_label(argument), text),
            hint=f"{getattr(validator, '__name__', 'the validator')} refused the value",
            input=text,
            **identity,
        )
    return value


def resolve(argument, raw=Unset, /, **identity):
    """
    resolve one argument from its raw parsed value (Unset when absent).

    identity (path, tusk) is attached to any fault raised.
    """
    identity = identity | {"argument": argument.name}

    if argument.flag:
        return raw is not Unset and bool(raw)

    if raw is not Unset:
        if argument.multiple:
            return [_convert(argument, text, identity) for text in raw]
        return _convert(argument, raw, identity)

    if (default := argument.default) is not Unset:
        if isinstance(default, str):
            value = _convert(argument, default, identity, validate=False)
            return [value] if argument.multiple else value
        if argument.multiple and isinstance(default, list | tuple):
            return [
                _convert(argument, item, identity, validate=False) if isinstance(item, str) else item
                for item in default
            ]
        return default

    if argument.optional:
        return None

    raise MissingArgumentError(
        "argument %r is required" % _label(argument),
        hint="pass it as %s <value>" % _label(argument) if argument.switches else "add it after the command name",
        **identity,
    )


def resolve_all(arguments, values, /, **identity):
    """
    resolve an ordered mapping of arguments against parsed raw values.

    every argument is attempted; a single failure is raised as is, several
    failures are raised together as a CommandExit group.
    """
    resolved = {}
    faults = []
    for name, argument in arguments.items():
        try:
            resolved[name] = resolve(argument, values.get(name, Unset), **identity)
        except ResolutionError as fault:
            faults.append(fault)

    if len(faults) == 1:
        raise faults[0]
    if faults:
        raise CommandExit(faults)
    return resolved


__all__ = (
    "resolve",
    "resolve_all",
)
