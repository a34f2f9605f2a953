import pathlib

from rich.pretty import pprint

from argfold import *

parser = Parser("scopt", colorful=True)
parser.head("scopt", "3.x")
parser.help("help", "h")
parser.version("version")
parser.option("foo", "f", type=int, descr="foo is an integer property", action=lambda value, config: config | {"foo": value})
parser.add(
    Option("max", type=pair(str, int))
    .key_value_names("lib", "count")
    .validate(lambda kv: success if kv[1] > 0 else failure("Value <max> must be >0"))
    .action(lambda kv, config: config | {"libs": config.get("libs", {}) | {kv[0]: kv[1]}})
    .unbounded()
    .text("maximum count for <lib>")
)
parser.option("verbose", "v", descr="verbose is a flag", action=lambda _, config: config | {"verbose": True})
parser.add(Argument("file", type=pathlib.Path).optional().unbounded().text("input files").action(
    lambda path, config: config | {"files": config.get("files", ()) + (path,)}
))
parser.note("some notes.")
parser.command(
    "update",
    Option("xyz", type=bool).text("xyz is a boolean property").action(lambda value, config: config | {"xyz": value}),
    descr="update is a command",
    action=lambda _, config: config | {"mode": "update"},
)


if __name__ == '__main__':
    pprint(parser.parse(initial={}))
