"""
argfold matcher: walk canonical tokens against nested scopes and fold the result.

phases (one Matcher per run, never reused)
- setup
  • tokenize the arguments; start in the parser's top-level scope with command
    matching allowed; fresh occurrence counters; state = caller's initial value.
- loop
  • plain token (not after "--") + command word of the active scope + nothing
    consumed yet in that scope → enter the command (count, act, children become the scope).
  • --long / -s / cluster member known in the active scope, or the parser's
    help/version option in any scope → resolve value (inline or next token),
    coerce, run every validator, count, act.
  • other plain token → next positional argument not yet at its maximum.
  • anything unknown → fault (or warning for non-strict parsers); keep going.
  • a terminator option (help/version) stops the loop.
- end of stream
  • every node of every reached scope is checked against its occurrence bounds.
  • parser-level config checks run when nothing failed so far.

short clusters ("-abc")
- characters are taken left to right; valueless options are applied, the first
  value-bearing option takes the rest of the cluster as its inline value (or the
  next token when nothing is left); an unknown character is reported as "-<char>"
  and the rest of the cluster is dropped.

values taken from the next token
- a plain token, or a short option/cluster spelling that names no option of the
  active scope (so negative numbers work: --offset -3).

faults are position-first (“at third position”) and never raised from here.
"""
import difflib
import functools
from collections import defaultdict, deque

from .coercers import CoercionFailure, ValueArity
from .faults import *
from .specs import Option, Argument, Command, Failure, success
from .tokens import *
from .utils import Unset, ordinal


def _kind(node):
    return type(node).__typename__


class Outcome:
    """
    result of one parse run.

    attributes
    - value: the folded state on success (fold mode), otherwise None.
    - errors: tuple of ParseException, in the order they were found.
    - warnings: tuple of ParseWarning.
    - path: the commands entered, outermost first (the deepest scope reached).
    - terminator: the help/version option that stopped parsing, or None.
    """

    def __init__(self, parser, value, errors, warnings, path, terminator):
        self.parser = parser
        self.value = value
        self.errors = tuple(errors)
        self.warnings = tuple(warnings)
        self.path = tuple(path)
        self.terminator = terminator

    @property
    def success(self):
        return not self.errors and self.terminator is None

    def __bool__(self):
        return self.success

    @functools.cached_property
    def usage(self):
        """
        plain usage text for the deepest scope reached.
        """
        from .usage import render_text

        return render_text(self.parser, self.path)

    def unwrap(self):
        """
        return the value, or raise ParseExit grouping every error.
        """
        if self.errors:
            trigger(ParseExit(self.errors), parser=self.parser, shell=False)
        return self.value

    def __repr__(self):
        return f"outcome(success={self.success!r}, value={self.value!r}, errors={len(self.errors)!r})"


class Matcher:
    """
    state machine for a single run over a fixed token list.
    """

    def __init__(self, parser, arguments, initial=None):
        self.parser = parser
        self.tokens = deque(tokenize(arguments))
        self.state = initial
        self.counts = defaultdict(int)
        self.errors = []
        self.warnings = []
        self.path = ()
        self.registry = parser.registry
        self.routable = True
        self.cursor = 0
        self.terminator = None

    # ── reporting ──────────────────────────────────────────────────────────────

    @property
    def route(self):
        return " ".join((self.parser.prog, *(command.name for command in self.path)))

    def _helpful(self, text):
        if self.parser.helper is not None:
            return "%s or run '%s %s' to see the expected usage" % (text, self.route, self.parser.helper.label)
        return "%s (see the usage below)" % text

    def _fault(self, fault, warning=Unset):
        if warning is not Unset and not self.parser.strict:
            self.warnings.append(warning)
        else:
            self.errors.append(fault)

    def _delegated(self, node, spelling, token, exception, where):
        position = getattr(token, "position", None)
        at = " at %s position" % ordinal(position) if position else ""
        self.errors.append(DelegatedError(
            "%s of %s %r%s raised %s" % (where, _kind(node), spelling, at, type(exception).__name__),
            title="delegated %s error" % where,
            code=FaultCode.DELEGATED_ERROR,
            node=node,
            position=position,
            exception=exception,
            hint="%s: %s" % (type(exception).__name__, exception),
            docs=getdoc(FaultCode.DELEGATED_ERROR),
        ))

    # ── loop ───────────────────────────────────────────────────────────────────

    def _lookup(self, spelling):
        """
        the option of the active scope spelled `spelling`, falling back to the
        parser's help and version options, which answer in every scope.
        """
        if spelling.startswith("--"):
            option = self.registry.long(spelling[2:])
        else:
            option = self.registry.short(spelling[1:])
        if option is None:
            for builtin in (self.parser.helper, self.parser.versioner):
                if builtin is not None and spelling in builtin.names:
                    return builtin
        return option

    def run(self):
        while self.tokens and self.terminator is None:
            token = self.tokens.popleft()
            match token:
                case PlainToken():
                    self._plain(token)
                case LongOpt(name=name, inline=inline):
                    self.routable = False
                    self._option(self._lookup("--" + name), "--" + name, inline, token)
                case ShortOpt(char=char, inline=inline):
                    self.routable = False
                    self._option(self._lookup("-" + char), "-" + char, inline, token)
                case ShortOptCluster():
                    self.routable = False
                    self._cluster(token)

        if self.terminator is None:
            self._check_occurrences()
            if not self.errors:
                self._check_config()

        value = self.state if not self.errors and self.terminator is None and not self.parser.mutable else None
        return Outcome(self.parser, value, self.errors, self.warnings, self.path, self.terminator)

    def _plain(self, token):
        if self.routable and not token.literal and (command := self.registry.command(token.text)) is not None:
            self._apply(command, None, token, command.name)
            self.path += (command,)
            self.registry = command.scope
            self.cursor = 0
            return

        self.routable = False
        arguments = self.registry.arguments
        while self.cursor < len(arguments) and self.counts[arguments[self.cursor]] >= arguments[self.cursor].max:
            self.cursor += 1

        if self.cursor < len(arguments):
            argument = arguments[self.cursor]
            self._apply(argument, token.text, token, argument.label)
            return

        message = "unknown argument %r at %s position" % (token.text, ordinal(token.position))
        hint = self._helpful("remove this extra value")
        self._fault(UnknownArgumentError(
            message,
            title="unknown argument",
            code=FaultCode.UNKNOWN_ARGUMENT,
            input=token.text,
            position=token.position,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_ARGUMENT),
        ), UnknownArgumentWarning(
            message,
            title="ignored argument",
            code=FaultCode.UNKNOWN_ARGUMENT_IGNORED,
            input=token.text,
            position=token.position,
            hint=hint,
        ))

    def _cluster(self, token):
        for index, char in enumerate(token.chars):
            option = self._lookup("-" + char)
            if option is None:
                self._unknown("-" + char, token)
                return
            if option.valuearity is ValueArity.NONE:
                self._option(option, "-" + char, None, token)
                if self.terminator is not None:
                    return
                continue
            self._option(option, "-" + char, token.chars[index + 1:] or None, token)
            return

    def _unknown(self, spelling, token):
        suggestions = difflib.get_close_matches(spelling, self.registry.spellings, 3)
        try:
            hint = self._helpful("did you mean %r?" % suggestions[0])
        except IndexError:
            hint = self._helpful("check the spelling")
        message = "unknown option %r at %s position" % (spelling, ordinal(token.position))
        self._fault(UnknownOptionError(
            message,
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            input=spelling,
            position=token.position,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_OPTION),
        ), UnknownOptionWarning(
            message,
            title="ignored option",
            code=FaultCode.UNKNOWN_OPTION_IGNORED,
            input=spelling,
            position=token.position,
            suggestions=suggestions,
            hint=hint,
        ))

    def _option(self, option, spelling, inline, token):
        if option is None:
            self._unknown(spelling, token)
            return

        if option.valuearity is ValueArity.NONE:
            if inline is not None:
                self.counts[option] += 1
                self.errors.append(FlagAssignmentError(
                    "option %r at %s position does not take a value" % (spelling, ordinal(token.position)),
                    title="option cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    input=spelling,
                    position=token.position,
                    node=option,
                    hint="remove everything from the separator (for example: %s)" % spelling,
                    docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                ))
                return
            self._apply(option, None, token, spelling)
            if option.terminator:
                self.terminator = option
            return

        raw = inline if inline is not None else self._take_value()
        if raw is None:
            self.counts[option] += 1
            self.errors.append(MissingValueError(
                "option %r at %s position expects a value" % (spelling, ordinal(token.position)),
                title="missing value",
                code=FaultCode.MISSING_VALUE,
                input=spelling,
                position=token.position,
                node=option,
                hint="pass it inline (%s=<value>) or as the next argument (%s <value>)" % (spelling, spelling),
                docs=getdoc(FaultCode.MISSING_VALUE),
            ))
            return
        self._apply(option, raw, token, spelling)

    def _take_value(self):
        try:
            token = self.tokens[0]
        except IndexError:
            return None
        match token:
            case PlainToken():
                pass
            case ShortOpt(char=char) if self._lookup("-" + char) is None:
                pass
            case ShortOptCluster(chars=chars) if self._lookup("-" + chars[0]) is None:
                pass
            case _:
                return None
        self.tokens.popleft()
        return token.raw

    # ── accumulation ───────────────────────────────────────────────────────────

    def _apply(self, node, raw, token, spelling):
        """
        count one occurrence of `node`, coerce `raw`, validate, and act.

        the action only runs when the value coerced and every validator passed.
        """
        self.counts[node] += 1

        if node.valuearity is ValueArity.NONE:
            value = None
        else:
            try:
                value = node.coercer.parse(raw)
            except CoercionFailure as failure:
                self._uncoercible(node, spelling, token, failure.raw, failure.name)
                return
            except Exception:
                self._uncoercible(node, spelling, token, raw, node.coercer.name)
                return

        valid = True
        for validator in node.validators:
            try:
                result = validator(value)
            except Exception as exception:
                self._delegated(node, spelling, token, exception, "validator")
                valid = False
                continue
            if isinstance(result, Failure):
                valid = False
                self.errors.append(ValidationError(
                    result.reason,
                    title="invalid %s" % _kind(node),
                    code=FaultCode.VALIDATION_FAILED,
                    input=spelling,
                    value=value,
                    position=token.position,
                    node=node,
                    hint=self._helpful("check the value given to %s at %s position" % (
                        spelling, ordinal(token.position)
                    )),
                    docs=getdoc(FaultCode.VALIDATION_FAILED),
                ))
            elif result is not success:
                valid = False
                self._delegated(node, spelling, token, TypeError(
                    "validators must return success or failure(reason), not %r" % (result,)
                ), "validator")

        if not valid or node.handler is None:
            return

        try:
            self.state = node.handler.apply(value, self.state)
        except Exception as exception:
            self._delegated(node, spelling, token, exception, "action")

    def _uncoercible(self, node, spelling, token, raw, name):
        self.errors.append(CoercionError(
            "%r is not a valid %s" % (raw, name),
            title="invalid value",
            code=FaultCode.COERCION_FAILED,
            input=spelling,
            value=raw,
            position=token.position,
            node=node,
            hint=self._helpful("%s %s at %s position expects %s" % (
                _kind(node), spelling, ordinal(token.position), name
            )),
            docs=getdoc(FaultCode.COERCION_FAILED),
        ))

    # ── end of stream ──────────────────────────────────────────────────────────

    def _check_occurrences(self):
        scopes = [self.parser.registry] + [command.scope for command in self.path]
        for scope in scopes:
            for node in scope:
                if not isinstance(node, Option | Argument | Command):
                    continue
                count = self.counts[node]
                lower, upper = node.arity
                if count == 0 and lower > 0:
                    self.errors.append(OccurrenceError(
                        "missing required %s %r" % (_kind(node), node.label),
                        title="missing %s" % _kind(node),
                        code=FaultCode.MISSING_OCCURRENCE,
                        node=node,
                        count=count,
                        hint=self._helpful("add %s" % node.label),
                        docs=getdoc(FaultCode.MISSING_OCCURRENCE),
                    ))
                elif count < lower:
                    self.errors.append(OccurrenceError(
                        "%s %r needs at least %d occurrences, got %d" % (
                            _kind(node), node.label, lower, count
                        ),
                        title="too few occurrences",
                        code=FaultCode.MISSING_OCCURRENCE,
                        node=node,
                        count=count,
                        hint=self._helpful("repeat %s" % node.label),
                        docs=getdoc(FaultCode.MISSING_OCCURRENCE),
                    ))
                elif count > upper:
                    self.errors.append(OccurrenceError(
                        "too many occurrences of %s %r: at most %d allowed, got %d" % (
                            _kind(node), node.label, upper, count
                        ),
                        title="too many occurrences",
                        code=FaultCode.TOO_MANY_OCCURRENCES,
                        node=node,
                        count=count,
                        hint=self._helpful("keep %s %s" % (
                            "a single" if upper == 1 else "at most %d of" % upper, node.label
                        )),
                        docs=getdoc(FaultCode.TOO_MANY_OCCURRENCES),
                    ))

    def _check_config(self):
        for check in self.parser.checks:
            try:
                result = check(self.state)
            except Exception as exception:
                self.errors.append(DelegatedError(
                    "configuration check %r raised %s" % (
                        getattr(check, "__qualname__", check), type(exception).__name__
                    ),
                    title="delegated check error",
                    code=FaultCode.DELEGATED_ERROR,
                    exception=exception,
                    hint="%s: %s" % (type(exception).__name__, exception),
                    docs=getdoc(FaultCode.DELEGATED_ERROR),
                ))
                continue
            if isinstance(result, Failure):
                self.errors.append(ConfigError(
                    result.reason,
                    title="invalid configuration",
                    code=FaultCode.CONFIG_CHECK_FAILED,
                    hint=self._helpful("adjust the arguments"),
                    docs=getdoc(FaultCode.CONFIG_CHECK_FAILED),
                ))
            elif result is not success:
                self.errors.append(DelegatedError(
                    "configuration check %r must return success or failure(reason), not %r" % (
                        getattr(check, "__qualname__", check), result
                    ),
                    title="delegated check error",
                    code=FaultCode.DELEGATED_ERROR,
                    hint="return success or failure(reason) from the check",
                    docs=getdoc(FaultCode.DELEGATED_ERROR),
                ))


__all__ = (
    "Outcome",
    "Matcher",
)
