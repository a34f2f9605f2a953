"""
argfold value coercers.

A coercer turns the raw text of a token into a typed value. Which coercer applies
to a spec node is decided by its `type` tag, looked up in a process-wide mapping:

    tag                    coercer                 value arity
    ─────────────────────  ──────────────────────  ───────────
    unit                   UnitCoercer             NONE   (flag, consumes no token)
    str                    StringCoercer           SCALAR
    int / float            NumberCoercer           SCALAR
    bool                   BooleanCoercer          SCALAR
    decimal.Decimal        NumberCoercer           SCALAR
    pathlib.Path           CallableCoercer         SCALAR
    pair(K, V)             PairCoercer             PAIR   ("key=value")
    sequence(T)            SequenceCoercer         SCALAR ("a,b,c")
    mapping(K, V)          MappingCoercer          SCALAR ("k1=v1,k2=v2")
    any other callable     CallableCoercer         SCALAR

Extending
- register(tag, coercer) binds a new tag; resolve(tag) is what the matcher calls.
- a coercer's parse(raw) returns the value or raises (ValueError/TypeError by
  convention, a converter may raise anything); the matcher turns that into a
  coercion fault ("'<raw>' is not a valid <name>").
"""
import decimal
import enum
import functools
import pathlib
from abc import ABC, abstractmethod


class ValueArity(enum.Enum):
    """
    how many raw values a coercer consumes and how it is rendered in usage.
    """
    NONE = "none"
    SCALAR = "scalar"
    PAIR = "pair"


class UnitType:
    """
    type tag for presence-only options (flags). Its single instance is `unit`.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __repr__(self):
        return "unit"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnitType' is not an acceptable base type")


unit = UnitType()


class CoercionFailure(ValueError):
    """
    raised by composite coercers to point at the exact part that failed.
    """

    def __init__(self, raw, name):
        super().__init__(raw, name)
        self.raw = raw
        self.name = name


def _part(coercer, raw):
    try:
        return coercer.parse(raw)
    except CoercionFailure:
        raise
    except Exception:
        raise CoercionFailure(raw, coercer.name) from None


class Coercer(ABC):
    """
    capability interface: raw token text → typed value.

    attributes
    - name: label used in coercion messages ("'x' is not a valid <name>").
    - arity: ValueArity of the values this coercer consumes.
    """
    arity = ValueArity.SCALAR

    def __init__(self, name):
        self.name = name

    @abstractmethod
    def parse(self, raw, /):
        """
        return the typed value or raise ValueError/TypeError.
        """

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class UnitCoercer(Coercer):
    arity = ValueArity.NONE

    def parse(self, raw=None, /):
        return None


class StringCoercer(Coercer):
    def parse(self, raw, /):
        return raw


class NumberCoercer(Coercer):
    def __init__(self, name, converter):
        super().__init__(name)
        self.converter = converter

    def parse(self, raw, /):
        try:
            return self.converter(raw.strip())
        except decimal.InvalidOperation:
            raise ValueError(raw) from None


class BooleanCoercer(Coercer):
    truthy = frozenset(("true", "yes", "y", "on", "1"))
    falsy = frozenset(("false", "no", "n", "off", "0"))

    def parse(self, raw, /):
        if (lowered := raw.strip().lower()) in self.truthy:
            return True
        if lowered in self.falsy:
            return False
        raise ValueError(raw)


class CallableCoercer(Coercer):
    """
    any callable taking one string (e.g. pathlib.Path, an Enum, a user function).
    """

    def __init__(self, converter):
        super().__init__(getattr(converter, "__name__", type(converter).__name__).lower())
        self.converter = converter

    def parse(self, raw, /):
        return self.converter(raw)


class PairCoercer(Coercer):
    """
    "key=value" → (key, value); each side goes through its own coercer.
    """
    arity = ValueArity.PAIR

    def __init__(self, key, value):
        super().__init__(f"{key.name}={value.name} pair")
        self.key = key
        self.value = value

    def parse(self, raw, /):
        key, separator, value = raw.partition("=")
        if not separator:
            raise ValueError(raw)
        return _part(self.key, key), _part(self.value, value)


class SequenceCoercer(Coercer):
    """
    "a,b,c" → [a, b, c], each item through the element coercer.
    """

    def __init__(self, element):
        super().__init__(f"{element.name} list")
        self.element = element

    def parse(self, raw, /):
        if not raw:
            return []
        return [_part(self.element, item) for item in raw.split(",")]


class MappingCoercer(Coercer):
    """
    "k1=v1,k2=v2" → {k1: v1, k2: v2}.
    """

    def __init__(self, key, value):
        super().__init__(f"{key.name}={value.name} map")
        self.pair = PairCoercer(key, value)

    def parse(self, raw, /):
        if not raw:
            return {}
        return dict(self.pair.parse(item) for item in raw.split(","))


class _Composite:
    """
    hashable type tag for composite coercers (pair/sequence/mapping).
    """
    __slots__ = ("kind", "parameters")

    def __init__(self, kind, *parameters):
        self.kind = kind
        self.parameters = parameters

    def __eq__(self, other):
        return isinstance(other, _Composite) and (self.kind, self.parameters) == (other.kind, other.parameters)

    def __hash__(self):
        return hash((self.kind, self.parameters))

    def __repr__(self):
        return f"{self.kind}[{", ".join(map(_tagname, self.parameters))}]"


def _tagname(tag):
    return getattr(tag, "__name__", repr(tag))


def pair(key, value, /):
    """
    type tag for a key=value option, e.g. Option("max", type=pair(str, int)).
    """
    return _Composite("pair", key, value)


def sequence(element, /):
    """
    type tag for a comma-separated list value, e.g. sequence(pathlib.Path).
    """
    return _Composite("sequence", element)


def mapping(key, value, /):
    """
    type tag for a comma-separated list of key=value entries.
    """
    return _Composite("mapping", key, value)


_coercers = {
    unit: UnitCoercer("unit"),
    str: StringCoercer("string"),
    int: NumberCoercer("int", int),
    float: NumberCoercer("float", float),
    bool: BooleanCoercer("boolean"),
    decimal.Decimal: NumberCoercer("decimal", decimal.Decimal),
    pathlib.Path: CallableCoercer(pathlib.Path),
}


def register(tag, coercer, /):
    """
    bind a type tag to a coercer (replacing any previous binding).
    """
    if not isinstance(coercer, Coercer):
        raise TypeError("register() second argument must be a coercer")
    try:
        hash(tag)
    except TypeError:
        raise TypeError("register() first argument must be hashable") from None
    _coercers[tag] = coercer
    return coercer


def resolve(tag, /):
    """
    return the coercer for a type tag.

    resolution order
    - explicitly registered tags.
    - composite tags (pair/sequence/mapping), built from their parts.
    - any other callable → CallableCoercer(tag).

    raises
    - TypeError when the tag is neither registered nor callable.
    """
    if isinstance(tag, Coercer):
        return tag
    try:
        return _coercers[tag]
    except (KeyError, TypeError):
        pass
    if isinstance(tag, _Composite):
        parts = [resolve(parameter) for parameter in tag.parameters]
        if any(part.arity is not ValueArity.SCALAR for part in parts):
            raise TypeError(f"{tag!r} parts must be scalar types")
        match tag.kind:
            case "pair":
                return PairCoercer(*parts)
            case "sequence":
                return SequenceCoercer(*parts)
            case "mapping":
                return MappingCoercer(*parts)
    if callable(tag):
        return CallableCoercer(tag)
    raise TypeError(f"no coercer registered for type {tag!r}")


__all__ = (
    "ValueArity",
    "UnitType",
    "unit",
    "CoercionFailure",
    "Coercer",
    "UnitCoercer",
    "StringCoercer",
    "NumberCoercer",
    "BooleanCoercer",
    "CallableCoercer",
    "PairCoercer",
    "SequenceCoercer",
    "MappingCoercer",
    "pair",
    "sequence",
    "mapping",
    "register",
    "resolve",
)
