"""
argfold faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings), grouped by domain.
- DeclarationError: programmer error raised while declaring options/arguments/commands.
- ParseException / ParseWarning: collected (never raised by parsing) faults that
  carry a message + options and know how to render themselves with rich.
- ParseExit: exception group bundling every fault of one parse run.
- trigger(): central entry point to surface any fault (print in shell mode, raise/warn otherwise).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: every message includes the ordinal position of the token
  (“at third position”) so users can learn by trying.
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
"""
import copy
import inspect
import warnings
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
    canonical fault codes used across the parser (stable identifiers).

    grouping
    - tokens (2110x): UNKNOWN_OPTION, UNKNOWN_ARGUMENT, FLAG_ASSIGNMENT
    - values (2111x): MISSING_VALUE, COERCION_FAILED, VALIDATION_FAILED
    - occurrences (2112x): MISSING_OCCURRENCE, TOO_MANY_OCCURRENCES
    - delegated/config (2113x): DELEGATED_ERROR, CONFIG_CHECK_FAILED
    - warnings (2210x): UNKNOWN_OPTION_IGNORED, UNKNOWN_ARGUMENT_IGNORED
    """
    # --- token errors (211xx) ---
    UNKNOWN_OPTION           = 21101
    UNKNOWN_ARGUMENT         = 21102
    FLAG_ASSIGNMENT          = 21103

    # --- value errors (211xx) ---
    MISSING_VALUE            = 21111
    COERCION_FAILED          = 21112
    VALIDATION_FAILED        = 21113

    # --- occurrence errors (211xx) ---
    MISSING_OCCURRENCE       = 21121
    TOO_MANY_OCCURRENCES     = 21122

    # --- delegated / config errors (211xx) ---
    DELEGATED_ERROR          = 21131
    CONFIG_CHECK_FAILED      = 21132

    # --- warnings (221xx) ---
    UNKNOWN_OPTION_IGNORED   = 22101
    UNKNOWN_ARGUMENT_IGNORED = 22102

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class DeclarationError(ValueError):
    """
    raised while declaring a spec node or registering it into a scope.

    these are programmer errors (duplicate names, invalid occurrence bounds,
    ambiguous positional layouts, action kind not matching the parser mode)
    and are always fatal to the declaring call.
    """


def _styled(fault, palette):
    """
    build the (styler, text) helper pair shared by every renderable fault.
    """
    styles = defaultdict(str, palette | getattr(__import__("__main__"), "__styles__", {}))
    colorful = fault.options.get("colorful", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    return styler, text


def _progname(fault):
    parser = fault.options.get("parser")
    return getattr(__import__("__main__"), "__prog__", getattr(parser, "prog", "argfold"))


class ParseException(Exception):
    """
    base type for every fault collected while parsing a token list.

    the message is the one-line body; options carry the context (title, code,
    hint, position, input, node, ...) and the rendering flags (colorful, fancy).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def title(self):
        return self.options.get("title", "")

    @property
    def hint(self):
        return self.options.get("hint", "")

    @property
    def position(self):
        return self.options.get("position")

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        styler, text = _styled(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

        header = Text.assemble(
            "[ ",
            text(_progname(self), styler("prog-name")),
            " — ",
            text(self.code.normalize() if self.code else "", styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint")))

        if self.options.get("fancy", False):
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownOptionError(ParseException): ...
class UnknownArgumentError(ParseException): ...
class FlagAssignmentError(ParseException): ...
class MissingValueError(ParseException): ...
class CoercionError(ParseException): ...
class ValidationError(ParseException): ...
class OccurrenceError(ParseException): ...
class DelegatedError(ParseException): ...
class ConfigError(ParseException): ...


class ParseWarning(Warning):
    """
    base type for soft faults (reported, never failing the parse).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def title(self):
        return self.options.get("title", "")

    @property
    def hint(self):
        return self.options.get("hint", "")

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        styler, text = _styled(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        })

        header = Text.assemble(
            "[ ",
            text(_progname(self), styler("prog-name")),
            " — ",
            text(self.code.normalize() if self.code else "", styler("code")),
            " | ",
            text(self.title.title(), styler("warning-title")),
            " ]"
        )
        message = text(self.message, styler("warning-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.hint, styler("hint")))

        if self.options.get("fancy", False):
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownOptionWarning(ParseWarning): ...
class UnknownArgumentWarning(ParseWarning): ...


class ParseExit(ExceptionGroup[ParseException]):
    """
    every fault of one parse run, grouped.

    in shell mode it renders all faults under one header; otherwise it is raised.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad parse", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad parse", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        styler, text = _styled(self, {
            "prog-name": "bold #E6E6F0",
            "title": "bold #FF4DA6",
        })

        header = Text.assemble(
            "[ ", text(_progname(self), styler("prog-name")), " — ", text(self.message.title(), styler("title")), " ]"
        )

        renders = [copy.replace(exception, **self.options) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via the rich console; otherwise exceptions
      are raised and warnings are emitted through the warnings module.
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
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "DeclarationError",
    "ParseException",
    "UnknownOptionError",
    "UnknownArgumentError",
    "FlagAssignmentError",
    "MissingValueError",
    "CoercionError",
    "ValidationError",
    "OccurrenceError",
    "DelegatedError",
    "ConfigError",
    "ParseWarning",
    "UnknownOptionWarning",
    "UnknownArgumentWarning",
    "ParseExit",
    "trigger",
    "getdoc",
)
