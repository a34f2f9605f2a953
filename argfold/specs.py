r"""
argfold spec nodes: options, arguments, commands and notes.

Overview
- Specs
  • Option: named spec matched as --long and/or -s; a flag when its type is `unit`.
  • Argument: positional spec bound by declaration order.
  • Command: literal word matched in first position of its scope; owns a child scope.
  • Note: free-form text kept at its declared position in usage output.

- Results of validators
  • success: the singleton a validator returns when the value is acceptable.
  • failure(reason): what a validator returns otherwise; every failure is reported.

- Actions (exactly one kind per parser)
  • Fold(fn): fn(value, state) -> new state (immutable mode).
  • Effect(fn): fn(value) -> None (mutable mode).

Building
- Nodes are immutable. Every builder method returns a new node through
  copy.replace (see __replace__), so partially built nodes can be shared:

    >>> base = Option("max", type=pair(str, int)).key_value_names("lib", "count")
    >>> strict = base.validate(lambda kv: success if kv[1] > 0 else failure("max must be >0"))
    >>> base.validators
    ()

Metadata (sanitized on construction)
- arity: (min, max) occurrence bounds, 0 <= min <= max, max >= 1, max may be math.inf.
- validators: callables, run in declaration order, never short-circuited.
- handler: Fold | Effect | None.
- descr: help text (None when absent); metavar: value placeholder for usage.
- keyvar: (key, value) placeholders, only for pair-typed specs.
- Option names: long matches r"[^\W_][\w-]*", short is one letter or digit.
"""
import copy
import functools
import math
import operator
import re

from . import coercers
from .coercers import ValueArity, unit
from .faults import DeclarationError
from .utils import *


class Success:
    """
    the value a validator returns when it accepts its input. Its single instance is `success`.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return True

    def __repr__(self):
        return "success"


class Failure:
    """
    the value a validator returns to reject its input, carrying the reason shown to users.
    """
    __slots__ = ("reason",)

    def __init__(self, reason):
        if not isinstance(reason, str):
            raise TypeError("failure() reason must be a string")
        self.reason = reason

    def __bool__(self):
        return False

    def __eq__(self, other):
        return isinstance(other, Failure) and other.reason == self.reason

    def __hash__(self):
        return hash(self.reason)

    def __repr__(self):
        return f"failure({self.reason!r})"


success = Success()


def failure(reason, /):
    return Failure(reason)


class Fold:
    """
    pure action: new_state = fn(value, state).
    """
    __slots__ = ("function",)

    def __init__(self, function):
        if not callable(function):
            raise TypeError("action must be callable")
        self.function = function

    def apply(self, value, state, /):
        return self.function(value, state)

    def __repr__(self):
        return f"fold({getattr(self.function, "__qualname__", self.function)!s})"


class Effect:
    """
    side-effecting action: fn(value); the state passes through untouched.
    """
    __slots__ = ("function",)

    def __init__(self, function):
        if not callable(function):
            raise TypeError("foreach action must be callable")
        self.function = function

    def apply(self, value, state, /):
        self.function(value)
        return state

    def __repr__(self):
        return f"effect({getattr(self.function, "__qualname__", self.function)!s})"


class SpecType(type):
    """
    Metaclass that exposes declared fields as read-only properties.

    Responsibilities
    - __typename__ derived from the class name (camel-case split with hyphens),
      used in declaration messages.
    - read-only properties (via mirror()) for every name in __introspectable__.
    - stable __repr__/__rich_repr__ listing __displayable__ (or __introspectable__).
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
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate arity, validators, handler, descr and hidden (shared by every node).

    Raises
    - TypeError: wrong Python types (non-callable validator, non-string descr, ...).
    - DeclarationError: invalid occurrence bounds or an empty description.
    """
    try:
        lower, upper = metadata["arity"]
    except (TypeError, ValueError):
        raise TypeError(f"{cls.__typename__} 'arity' must be a (min, max) pair") from None
    if not isinstance(lower, int) or isinstance(lower, bool):
        raise TypeError(f"{cls.__typename__} minimum occurrences must be an integer")
    if not (isinstance(upper, int) and not isinstance(upper, bool)) and upper != math.inf:
        raise TypeError(f"{cls.__typename__} maximum occurrences must be an integer or math.inf")
    if lower < 0:
        raise DeclarationError(f"{cls.__typename__} minimum occurrences cannot be negative")
    if upper < 1:
        raise DeclarationError(f"{cls.__typename__} maximum occurrences must be at least 1")
    if lower > upper:
        raise DeclarationError(f"{cls.__typename__} minimum occurrences ({lower}) exceed the maximum ({upper})")
    metadata["arity"] = (lower, upper)

    validators = tuple(metadata["validators"])
    if not all(map(callable, validators)):
        raise TypeError(f"{cls.__typename__} validators must be callable")
    metadata["validators"] = validators

    if not isinstance(handler := metadata["handler"], Fold | Effect | Unset | None):
        raise TypeError(f"{cls.__typename__} 'handler' must be a fold or an effect")
    metadata["handler"] = coalesce(handler)

    if not isinstance(descr := metadata["descr"], str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise DeclarationError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    metadata["hidden"] = bool(metadata["hidden"])


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option names (at least one of long/short).
    """
    # a stored node keeps a missing name as None
    long, short = (Unset if metadata[name] is None else metadata[name] for name in ("long", "short"))
    if long is Unset and short is Unset:
        raise DeclarationError(f"{cls.__typename__} must specify a long name, a short name, or both")

    if not isinstance(long, str | Unset):
        raise TypeError(f"{cls.__typename__} long name must be a string")
    if isinstance(long, str):
        long = long.removeprefix("--")
        if not re.fullmatch(r"[^\W_][\w-]*", long):
            raise DeclarationError(f"{cls.__typename__} long name {long!r} is not a valid option name")

    if not isinstance(short, str | Unset):
        raise TypeError(f"{cls.__typename__} short name must be a string")
    if isinstance(short, str):
        short = short.removeprefix("-")
        if not re.fullmatch(r"[^\W_]", short):
            raise DeclarationError(f"{cls.__typename__} short name {short!r} must be a single letter or digit")

    metadata["long"] = coalesce(long)
    metadata["short"] = coalesce(short)


def _sanitize_valued_metadata(cls, metadata, /):
    """
    Internal: resolve the coercer for 'type' and validate the usage placeholders.
    """
    metadata["coercer"] = coercers.resolve(metadata["type"])
    arity = metadata["coercer"].arity

    if not isinstance(metavar := metadata["metavar"], str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise DeclarationError(f"{cls.__typename__} 'metavar' cannot be empty")
    elif isinstance(metavar, str) and arity is ValueArity.NONE:
        raise DeclarationError(f"valueless {cls.__typename__} cannot have a 'metavar'")
    metadata["metavar"] = coalesce(metavar)

    keyvar = coalesce(metadata["keyvar"])
    if keyvar is not None:
        if arity is not ValueArity.PAIR:
            raise DeclarationError(f"only key-value {cls.__typename__} types can have key-value names")
        try:
            key, value = keyvar
        except (TypeError, ValueError):
            raise TypeError(f"{cls.__typename__} key-value names must be a (key, value) pair") from None
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(f"{cls.__typename__} key-value names must be strings")
        if not key.strip() or not value.strip():
            raise DeclarationError(f"{cls.__typename__} key-value names cannot be empty")
        keyvar = (key.strip(), value.strip())
    metadata["keyvar"] = keyvar


class Spec(metaclass=SpecType):
    """
    fluent builder surface shared by every node kind.

    each method returns a new node; the receiver is never modified.
    """

    @property
    def min(self):
        return self.arity[0]

    @property
    def max(self):
        return self.arity[1]

    def occurs(self, min, max=Unset, /):
        return copy.replace(self, arity=(min, coalesce(max, self.max)))

    def required(self):
        """
        minimum occurrences set to 1 (a missing occurrence is reported).
        """
        return copy.replace(self, arity=(1, self.max))

    def optional(self):
        return copy.replace(self, arity=(0, self.max))

    def unbounded(self):
        return copy.replace(self, arity=(self.min, math.inf))

    def validate(self, validator, /):
        return copy.replace(self, validators=self.validators + (validator,))

    def action(self, function, /):
        return copy.replace(self, handler=Fold(function))

    def foreach(self, function, /):
        return copy.replace(self, handler=Effect(function))

    def text(self, descr, /):
        return copy.replace(self, descr=descr)

    def hide(self):
        return copy.replace(self, hidden=True)

    def __replace__(self, /, **changes):
        fields = {name: getattr(self, name) for name in type(self).__fields__} | changes
        identity = [fields.pop(name) for name in type(self).__identity__]
        return type(self)(*identity, **fields)


class Valued(Spec):
    """
    builder methods for value-bearing nodes (options and arguments).
    """

    @property
    def valuearity(self):
        return self.coercer.arity

    def value_name(self, metavar, /):
        return copy.replace(self, metavar=metavar)

    def key_value_names(self, key, value, /):
        return copy.replace(self, keyvar=(key, value))


class Option(Valued):
    """
    Named spec: matched as --long, -s, or as a member of a short cluster (-abc).

    Parameters
    - long, short: at least one. Leading dashes are accepted and stripped.
    - type: coercer tag (see argfold.coercers). `unit` (default) makes a flag.
    - arity: (min, max) occurrences; default (0, 1).
    - validators, handler, descr, metavar, keyvar, hidden: see module docstring.
    - helper / terminator: set by Parser.help()/Parser.version(); a terminator
      stops parsing when matched, a helper additionally prints usage.
    """
    __identity__ = ("long", "short")
    __fields__ = (
        "long",
        "short",
        "type",
        "arity",
        "validators",
        "handler",
        "descr",
        "metavar",
        "keyvar",
        "hidden",
        "helper",
        "terminator",
    )
    __introspectable__ = __fields__ + ("coercer",)
    __displayable__ = ("long", "short", "type", "arity", "descr")

    def __new__(
            cls,
            long=Unset,
            short=Unset,
            type=unit,
            arity=(0, 1),
            validators=(),
            handler=Unset,
            descr=Unset,
            metavar=Unset,
            keyvar=Unset,
            hidden=False,
            helper=False,
            terminator=False,
    ):
        metadata = {
            "long": long,
            "short": short,
            "type": type,
            "arity": arity,
            "validators": validators,
            "handler": handler,
            "descr": descr,
            "metavar": metavar,
            "keyvar": keyvar,
            "hidden": hidden,
            "helper": bool(helper),
            "terminator": bool(terminator or helper),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_valued_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def names(self):
        """
        every spelling that matches this option ("--long", "-s").
        """
        return tuple(name for name in (
            "--" + self.long if self.long else None,
            "-" + self.short if self.short else None,
        ) if name)

    @property
    def label(self):
        return self.names[0]


class Argument(Valued):
    """
    Positional spec, required and single-valued by default.

    Parameters
    - name: display name, rendered as <name> unless a metavar is given.
    - type: coercer tag; must consume a value (not `unit`).
    - arity: (min, max) occurrences; default (1, 1). `.unbounded()` absorbs the rest.
    """
    __identity__ = ("name",)
    __fields__ = (
        "name",
        "type",
        "arity",
        "validators",
        "handler",
        "descr",
        "metavar",
        "keyvar",
        "hidden",
    )
    __introspectable__ = __fields__ + ("coercer",)
    __displayable__ = ("name", "type", "arity", "descr")

    def __new__(
            cls,
            name,
            /,
            type=str,
            arity=(1, 1),
            validators=(),
            handler=Unset,
            descr=Unset,
            metavar=Unset,
            keyvar=Unset,
            hidden=False,
    ):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        elif not (name := name.strip()):
            raise DeclarationError(f"{cls.__typename__} name cannot be empty")

        metadata = {
            "name": name,
            "type": type,
            "arity": arity,
            "validators": validators,
            "handler": handler,
            "descr": descr,
            "metavar": metavar,
            "keyvar": keyvar,
            "hidden": hidden,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_valued_metadata(cls, metadata)
        if metadata["coercer"].arity is ValueArity.NONE:
            raise DeclarationError(f"{cls.__typename__} {name!r} must take a value")

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def label(self):
        return self.metavar or f"<{self.name}>"


class Command(Spec):
    """
    Literal word matched only in first position of its scope.

    Once matched, its children become the active scope. Its handler receives None.
    """
    __identity__ = ("name",)
    __fields__ = (
        "name",
        "arity",
        "validators",
        "handler",
        "descr",
        "hidden",
        "scope",
    )
    __introspectable__ = __fields__
    __displayable__ = ("name", "arity", "descr", "scope")

    def __new__(
            cls,
            name,
            /,
            arity=(0, 1),
            validators=(),
            handler=Unset,
            descr=Unset,
            hidden=False,
            scope=Unset,
    ):
        from .registry import Registry

        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        elif not re.fullmatch(r"[^\W_][\w.-]*", name := name.strip()):
            raise DeclarationError(f"{cls.__typename__} name {name!r} is not a valid command name")
        if not isinstance(scope, Registry | Unset):
            raise TypeError(f"{cls.__typename__} 'scope' must be a registry")

        metadata = {
            "name": name,
            "arity": arity,
            "validators": validators,
            "handler": handler,
            "descr": descr,
            "hidden": hidden,
            "scope": coalesce(scope, Registry()),
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def label(self):
        return self.name

    @property
    def valuearity(self):
        return ValueArity.NONE

    def children(self, *nodes):
        """
        return this command with a fresh child scope holding `nodes` in order.
        """
        from .registry import Registry

        return copy.replace(self, scope=Registry(nodes))


class Note(metaclass=SpecType):
    """
    Free-form usage text, rendered at its declared position.
    """
    __introspectable__ = ("descr",)

    def __new__(cls, descr, /):
        if not isinstance(descr, str):
            raise TypeError(f"{cls.__typename__} text must be a string")
        self = super().__new__(cls)
        self._descr = descr
        return self


__all__ = (
    "Success",
    "Failure",
    "success",
    "failure",
    "Fold",
    "Effect",
    "Spec",
    "Option",
    "Argument",
    "Command",
    "Note",
)
