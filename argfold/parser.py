"""
argfold parser: declaration facade, parse entry points and terminal reporting.

What this module provides
- Parser: owns the program name, head lines, the top-level Registry and the
  runtime flags; declares nodes through a small fluent surface and runs the
  Matcher over a token list.

Modes
- fold (default, mutable=False): actions are Fold(fn), fn(value, state) -> state.
  parse() returns the final state, or None when the run failed.
- effect (mutable=True): actions are Effect(fn), fn(value) for its side effect.
  parse() returns True/False.
Every action of the parser (nested command scopes included) must match its mode;
a mismatch is a DeclarationError at declaration time.

Quick start
    from argfold import Parser, Option, pair

    parser = Parser("scopt")
    parser.head("scopt", "3.x")
    parser.help("help")
    parser.option("foo", "f", type=int, action=lambda value, config: config | {"foo": value})
    parser.add(Option("max", type=pair(str, int)).key_value_names("lib", "count"))
    config = parser.parse(["--foo", "3"], {})

Reporting
- faults are rendered through the rich stderr console (see argfold.faults),
  followed by the usage of the deepest scope reached.
- help/version terminators print to stdout, then call terminate().
"""
import sys

from rich.console import Console
from rich.text import Text

from .faults import *
from .faults import console
from .matcher import Matcher
from .registry import Registry
from .specs import *
from .specs import SpecType
from .usage import render, render_text
from .utils import *


def _handler(options):
    """
    Internal: turn the action=/foreach= conveniences into a handler.
    """
    action, foreach = options.pop("action", Unset), options.pop("foreach", Unset)
    if action is not Unset and foreach is not Unset:
        raise TypeError("pass either 'action' or 'foreach', not both")
    if action is not Unset:
        options["handler"] = Fold(action)
    elif foreach is not Unset:
        options["handler"] = Effect(foreach)
    return options


class Parser(metaclass=SpecType):
    """
    declarative command-line parser.

    Parameters
    - prog: program name used in usage and fault headers.
    - mutable: effect mode (actions mutate caller state) instead of fold mode.
    - strict: unknown options/arguments are errors (True) or warnings (False).
    - exit: terminate() calls sys.exit(0) after help/version when True.
    - colorful: style usage and faults with the palette (see __styles__).
    - fancy: wrap rendered faults in a panel.
    - show_usage_on_error: print the usage after the faults of a failed parse.
    """
    __introspectable__ = (
        "prog",
        "heads",
        "registry",
        "checks",
        "helper",
        "versioner",
        "mutable",
        "strict",
        "exit",
        "colorful",
        "fancy",
        "show_usage_on_error",
    )
    __displayable__ = (
        "prog",
        "mutable",
        "strict",
        "registry",
    )

    def __init__(
            self,
            prog,
            /,
            *,
            mutable=False,
            strict=True,
            exit=True,
            colorful=False,
            fancy=False,
            show_usage_on_error=True,
    ):
        if not isinstance(prog, str):
            raise TypeError(f"{type(self).__typename__} 'prog' must be a string")
        elif not (prog := prog.strip()):
            raise DeclarationError(f"{type(self).__typename__} 'prog' cannot be empty")
        self._prog = prog
        self._heads = []
        self._registry = Registry()
        self._checks = []
        self._helper = None
        self._versioner = None
        self._mutable = bool(mutable)
        self._strict = bool(strict)
        self._exit = bool(exit)
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._show_usage_on_error = bool(show_usage_on_error)

    # ── declarations ───────────────────────────────────────────────────────────

    def _check_mode(self, node):
        expected, unwanted = (Effect, Fold) if self.mutable else (Fold, Effect)
        if isinstance(getattr(node, "handler", None), unwanted):
            raise DeclarationError(
                f"{type(node).__typename__} {node.label!r} has {unwanted.__name__.lower()} action "
                f"but the parser expects {expected.__name__.lower()} actions "
                f"(use .{"foreach" if self.mutable else "action"}() instead)"
            )
        if isinstance(node, Command):
            for child in node.scope:
                self._check_mode(child)

    def add(self, *nodes):
        """
        register already-built nodes in the top-level scope; return the last one.
        """
        node = None
        for node in nodes:
            self._check_mode(node)
            self._registry.add(node)
            match node:
                case Option(helper=True):
                    self._helper = node
                case Option(terminator=True):
                    self._versioner = node
        return node

    def option(self, *args, **options):
        return self.add(Option(*args, **_handler(options)))

    def argument(self, name, /, **options):
        return self.add(Argument(name, **_handler(options)))

    def command(self, name, /, *children, **options):
        """
        declare a command; positional `children` become its scope.
        """
        return self.add(Command(name, **_handler(options)).children(*children))

    def note(self, text, /):
        return self.add(Note(text))

    def head(self, *lines):
        """
        append program header lines (printed on top of the usage and by version).
        """
        if not all(isinstance(line, str) for line in lines):
            raise TypeError(f"{type(self).__typename__} head lines must be strings")
        self._heads.append(" ".join(lines))
        return self

    def help(self, long="help", short=Unset, /, descr="show this usage and exit"):
        return self.add(Option(long, short, descr=descr, helper=True))

    def version(self, long="version", short=Unset, /, descr="show the version and exit"):
        return self.add(Option(long, short, descr=descr, terminator=True))

    def check(self, function, /):
        """
        register a configuration check: function(state) -> success | failure(reason).

        checks run once at the end of a run that found no other fault.
        """
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} check must be callable")
        self._checks.append(function)
        return self

    # ── running ────────────────────────────────────────────────────────────────

    def run(self, tokens, /, initial=None):
        """
        match `tokens` and return an Outcome; nothing is printed or raised.
        """
        if isinstance(tokens, str):
            raise TypeError(f"{type(self).__typename__} tokens must be a sequence of strings, not a string")
        return Matcher(self, tokens, initial).run()

    def parse(self, tokens=Unset, /, initial=None):
        """
        run the parser and report through the terminal.

        Returns
        - fold mode: the final state, or None on failure/termination.
        - effect mode: True on success, otherwise False.
        """
        outcome = self.run(list(coalesce(tokens, sys.argv[1:])), initial)
        options = dict(parser=self, shell=True, colorful=self.colorful, fancy=self.fancy)

        for warning in outcome.warnings:
            trigger(warning, **options)

        if outcome.errors:
            trigger(ParseExit(outcome.errors), **options)
            if self.show_usage_on_error:
                console.print(render(self, outcome.path), soft_wrap=True)
            return False if self.mutable else None

        if outcome.terminator is not None:
            stdout = Console()
            if outcome.terminator.helper:
                stdout.print(render(self, outcome.path), soft_wrap=True)
            else:
                stdout.print(Text("\n").join(map(Text, self.heads)) or Text(self.prog), soft_wrap=True)
            self.terminate()
            return False if self.mutable else None

        return True if self.mutable else outcome.value

    def usage(self):
        """
        plain usage text of the whole parser.
        """
        return render_text(self)

    def terminate(self):
        """
        hook called after help/version output; exits with status 0 unless exit=False.
        """
        if self.exit:
            sys.exit(0)


__all__ = (
    "Parser",
)
