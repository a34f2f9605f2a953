"""
argfold usage renderer.

Pure function of a parser's declarations: the same declarations always give the
same text, whatever happened during parsing. Layout:

    <head lines>
    Usage: <prog> [<command>] [options] <argument synopsis>

      -f, --foo <value>        help text
      --max:<key>=<value>      help text
      <file>...                help text
    <note text>

    Command: update [options]
    <command help text>
      --xyz <value>            help text

Palette keys (override through __styles__ in __main__, only used when colorful)
- head, usage-label, program-name, command-label, command-name
- option-name, metavar, argument-name, description, note
"""
from collections import defaultdict

from rich.text import Text

from .coercers import ValueArity
from .specs import Option, Argument, Note

COLUMN = 27
PADDING = 2


class _Renderer:
    def __init__(self, colorful):
        self.colorful = colorful
        self.styles = defaultdict(str, {
            "head": "bold #E6E6F0",
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "command-label": "bold #FFFFFF",
            "command-name": "bold #36C5F0",
            "option-name": "bold #00E6FF",
            "metavar": "bold #FFD600",
            "argument-name": "bold #22C55E",
            "description": "#9CA3AF",
            "note": "#D1D5DB",
        } | getattr(__import__("__main__"), "__styles__", {}))

    def text(self, fragment, style=""):
        if not self.colorful:
            return Text(str(fragment))
        return Text(str(fragment), self.styles[style])

    def option(self, option):
        names = Text(", ").join(
            self.text(name, "option-name") for name in sorted(option.names, key=len)
        )
        match option.valuearity:
            case ValueArity.NONE:
                return names
            case ValueArity.PAIR:
                if option.metavar is not None:
                    value = self.text(option.metavar, "metavar")
                else:
                    key, value = option.keyvar or ("key", "value")
                    value = self.text(f"<{key}>=<{value}>", "metavar")
                return Text.assemble(names, ":", value)
            case _:
                return Text.assemble(names, " ", self.text(option.metavar or "<value>", "metavar"))

    def argument(self, argument):
        label = self.text(argument.label, "argument-name")
        if argument.max > 1:
            label.append("...")
        return label

    def synopsis(self, scope):
        parts = []
        commands = [command for command in scope.commands if not command.hidden]
        if commands:
            parts.append(Text("<command>") if any(command.min for command in commands) else Text("[<command>]"))
        if any(not option.hidden for option in scope.options):
            parts.append(Text("[options]"))
        for argument in scope.arguments:
            if argument.hidden:
                continue
            label = self.argument(argument)
            parts.append(label if argument.min else Text.assemble("[", label, "]"))
        return Text(" ").join(parts)

    def entry(self, name, descr):
        line = Text.assemble(" " * PADDING, name)
        if descr:
            if len(line) < COLUMN - 1:
                line.append(" " * (COLUMN - len(line)))
            else:
                line.append("\n" + " " * COLUMN)
            line.append_text(self.text(descr, "description"))
        return line

    def listing(self, scope):
        lines = []
        for node in scope:
            match node:
                case Note():
                    lines.append(self.text(node.descr, "note"))
                case Option() if not node.hidden:
                    lines.append(self.entry(self.option(node), node.descr))
                case Argument() if not node.hidden:
                    lines.append(self.entry(self.argument(node), node.descr))
        return lines

    def blocks(self, scope, route=()):
        lines = []
        for command in scope.commands:
            if command.hidden:
                continue
            path = route + (command.name,)
            head = Text.assemble(
                self.text("Command:", "command-label"), " ", self.text(" ".join(path), "command-name")
            )
            if synopsis := self.synopsis(command.scope):
                head.append(" ").append_text(synopsis)
            lines.append(Text())
            lines.append(head)
            if command.descr:
                lines.append(self.text(command.descr, "description"))
            lines.extend(self.listing(command.scope))
            lines.extend(self.blocks(command.scope, path))
        return lines


def render(parser, path=(), /):
    """
    render the usage of `parser` as a rich Text.

    with a `path` of matched commands, only the deepest command's scope is
    rendered (its synopsis, listing and nested commands).
    """
    renderer = _Renderer(parser.colorful)
    scope = path[-1].scope if path else parser.registry

    usage = Text.assemble(
        renderer.text("Usage:", "usage-label"),
        " ",
        renderer.text(" ".join((parser.prog, *(command.name for command in path))), "program-name"),
    )
    if synopsis := renderer.synopsis(scope):
        usage.append(" ").append_text(synopsis)

    lines = [renderer.text(line, "head") for line in parser.heads]
    lines.append(usage)
    if path and path[-1].descr:
        lines.append(renderer.text(path[-1].descr, "description"))
    if listing := renderer.listing(scope):
        lines.append(Text())
        lines.extend(listing)
    lines.extend(renderer.blocks(scope, tuple(command.name for command in path)))
    return Text("\n").join(lines)


def render_text(parser, path=(), /):
    """
    plain-text usage (no styling), byte-stable for the same declarations.
    """
    return render(parser, path).plain


__all__ = (
    "render",
    "render_text",
)
