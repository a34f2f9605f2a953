"""
argfold registry: one ordered scope of spec nodes.

A registry holds the options, arguments, commands and notes of one scope (the
top level of a parser, or the children of one command) in declaration order,
and refuses declarations that would make matching ambiguous:

- option long names and short names are unique within the scope;
- command names are unique within the scope;
- at most one argument is unbounded, and it is the last argument of the scope;
- an optional or unbounded argument never precedes a required argument.

Lookups used by the matcher (by long name, short char, command word) are
indexed at registration time. A registry is only appended to while the CLI is
being declared; parsing never modifies it.
"""
import math

from .faults import DeclarationError
from .specs import Option, Argument, Command, Note


class Registry:
    """
    ordered, validated collection of spec nodes for one scope.
    """
    __slots__ = ("_nodes", "_longs", "_shorts", "_commands", "_arguments")

    def __init__(self, nodes=()):
        self._nodes = []
        self._longs = {}
        self._shorts = {}
        self._commands = {}
        self._arguments = []
        for node in nodes:
            self.add(node)

    def add(self, node, /):
        """
        append a node after checking the scope invariants; return the node.
        """
        if isinstance(node, Option):
            if node.long and node.long in self._longs:
                raise DeclarationError(f"option '--{node.long}' is already declared in this scope")
            if node.short and node.short in self._shorts:
                raise DeclarationError(f"option '-{node.short}' is already declared in this scope")
            if node.long:
                self._longs[node.long] = node
            if node.short:
                self._shorts[node.short] = node
        elif isinstance(node, Argument):
            self._check_argument(node)
            self._arguments.append(node)
        elif isinstance(node, Command):
            if node.name in self._commands:
                raise DeclarationError(f"command {node.name!r} is already declared in this scope")
            self._commands[node.name] = node
        elif not isinstance(node, Note):
            raise TypeError(f"registry entries must be options, arguments, commands or notes, not {type(node).__name__!r}")
        self._nodes.append(node)
        return node

    def _check_argument(self, node):
        for previous in self._arguments:
            if previous.max == math.inf:
                if node.max == math.inf:
                    raise DeclarationError(
                        f"argument {node.label!r} cannot be unbounded: {previous.label!r} already is"
                    )
                raise DeclarationError(
                    f"argument {node.label!r} cannot follow the unbounded argument {previous.label!r}"
                )
            if node.min > 0 and previous.min == 0:
                raise DeclarationError(
                    f"required argument {node.label!r} cannot follow the optional argument {previous.label!r}"
                )

    def __iter__(self):
        return iter(tuple(self._nodes))

    def __len__(self):
        return len(self._nodes)

    def __bool__(self):
        return bool(self._nodes)

    def __repr__(self):
        return f"registry({", ".join(map(repr, self._nodes))})"

    @property
    def nodes(self):
        return tuple(self._nodes)

    @property
    def options(self):
        return tuple(node for node in self._nodes if isinstance(node, Option))

    @property
    def arguments(self):
        return tuple(self._arguments)

    @property
    def commands(self):
        return tuple(self._commands.values())

    def long(self, name, /, default=None):
        return self._longs.get(name, default)

    def short(self, char, /, default=None):
        return self._shorts.get(char, default)

    def command(self, name, /, default=None):
        return self._commands.get(name, default)

    def walk(self, path=()):
        """
        yield (path, registry) for this scope and every nested command scope,
        depth-first in declaration order; path is the tuple of command nodes.
        """
        yield path, self
        for command in self._commands.values():
            yield from command.scope.walk(path + (command,))

    @property
    def spellings(self):
        """
        every option spelling of this scope ("--long", "-s"), for "did you mean" hints.
        """
        return tuple(name for option in self.options for name in option.names)


__all__ = (
    "Registry",
)
