"""
Helmsman dispatcher: multi-word command routing with interspersed flags.

Scope
- CommandEntry: a registered command under its normalized path.
- Dispatcher: registry of commands, the resolver that finds which command a
  token vector addresses, and the execute() flow (completion, help, parse,
  run).
- invoke(): convenience runner for anything implementing __invoke__.

Resolution
Commands live under paths such as "server start", and flags may appear
before, between or after the path words ("app --debug server start",
"app server -C local start"). The resolver only knows registered paths, not
flag schemas, so it guesses in one pass and then verifies:
1. Non-flag tokens are path candidates. A flag followed by a non-flag word is
   assumed to be valueless when that word extends the candidates into a prefix
   of some registered path; otherwise the word is assumed to be its value.
2. Candidate prefixes are tried longest first. For a registered prefix the
   command's arguments are the flags seen up to its last path word (with
   their assumed values) followed by every token after that word.
3. Those flags must exist in the matched command's FlagSet, and a flag assumed
   to carry a value must not be a boolean. "-h" and "--help" are always
   accepted. A prefix failing this check is skipped.

Help
Any "-h", "--help" or "help" token turns execution into help rendering:
command help when a command resolves, general help otherwise. Help is drawn
with rich and honors the colorful/fancy switches and __main__.__styles__.
"""
import difflib
import shlex
import sys
import warnings
from collections import defaultdict
from collections.abc import Iterable
from typing import NamedTuple
from warnings import catch_warnings

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .commands import Command
from .completion import command_completions, handle_completion
from .faults import *
from .utils import *

_HELP_FLAGS = frozenset(("-h", "--help"))
_HELP_TOKENS = frozenset(("-h", "--help", "help"))


class CommandEntry(NamedTuple):
    path: str
    command: Command
    usage: str


class _Skipped(NamedTuple):
    # A flag-looking token set aside during resolution.
    flag: str
    index: int
    value: str | None = None
    valued: bool = False


class Dispatcher:
    """
    Registry and router for commands addressed by space-separated paths.

    Parameters
    - name: program name used in help, completion scripts and fault headers.
    - shell: print faults and exit(1) instead of raising.
    - fancy: wrap help and faults in panels.
    - colorful: apply the style palette.

    Typical use
        >>> app = Dispatcher("app")
        >>> app.dispatch("server start", start)
        >>> app.execute(["server", "start", "--port", "8080"])
    """

    def __init__(self, name="", /, *, shell=False, fancy=False, colorful=True):
        if not isinstance(name, str):
            raise TypeError("Dispatcher 'name' must be a string")
        for option, value in (("shell", shell), ("fancy", fancy), ("colorful", colorful)):
            if not isinstance(value, bool):
                raise TypeError(f"Dispatcher '{option}' must be a boolean")
        self._name = name
        self._shell = shell
        self._fancy = fancy
        self._colorful = colorful
        self._commands = {}

    name = mirror("name")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")

    def dispatch(self, path, command, /):
        """
        Register command under path (whitespace-insensitive).

        A later registration under the same path replaces the earlier one.
        Returns command.
        """
        if not isinstance(path, str):
            raise TypeError("dispatch() first argument must be a string")
        if not (normalized := normalize(path)):
            raise ValueError("dispatch() path cannot be empty")
        if not isinstance(command, Command):
            raise TypeError("dispatch() second argument must be a Command")
        self._commands[normalized] = CommandEntry(normalized, command, command.usage)
        return command

    def lookup(self, path, /):
        """Command registered under path, or None."""
        if (entry := self._commands.get(normalize(path))) is not None:
            return entry.command
        return None

    def entry(self, path, /):
        """CommandEntry registered under path, or None."""
        return self._commands.get(normalize(path))

    def entries(self):
        return dict(self._commands)

    def commands(self):
        """A copy of the registry as {path: command}."""
        return {path: entry.command for path, entry in self._commands.items()}

    def has(self, path, /):
        return normalize(path) in self._commands

    def remove(self, path, /):
        """Unregister path; unknown paths are ignored."""
        self._commands.pop(normalize(path), None)

    def completions(self, prefix="", /):
        """Command completions for paths starting with prefix."""
        return command_completions(self, prefix)

    def find(self, tokens, /):
        """
        Plain longest-prefix lookup without any flag handling.

        Returns (entry, remaining tokens), or (None, tokens) when no prefix of
        tokens is registered.
        """
        tokens = list(tokens)
        for count in range(len(tokens), 0, -1):
            if (entry := self._commands.get(normalize(" ".join(tokens[:count])))) is not None:
                return entry, tokens[count:]
        return None, tokens

    def resolve(self, tokens, /):
        """
        Find the command addressed by tokens, allowing interspersed flags.

        Returns (entry, args) where args is the reassembled token vector for
        the command's FlagSet. Raises CommandNotFoundError otherwise.
        """
        tokens = list(tokens)
        if (resolved := self._resolve(tokens)) is None:
            raise self._missing(tokens)
        return resolved

    def _extends(self, words, word):
        # Would appending word keep the candidates on the way to a registered path?
        path = normalize(" ".join((*words, word)))
        return any(registered.startswith(path) for registered in self._commands)

    def _resolve(self, tokens):
        candidates = []
        skipped = []

        index = 0
        while index < len(tokens):
            token = tokens[index]

            if not token.startswith("-"):
                candidates.append((index, token))
                index += 1
                continue

            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is None or following.startswith("-"):
                skipped.append(_Skipped(token, index))
                index += 1
            elif self._extends((word for _, word in candidates), following):
                skipped.append(_Skipped(token, index))
                index += 1
            else:
                skipped.append(_Skipped(token, index, following, True))
                index += 2

        for count in range(len(candidates), 0, -1):
            path = normalize(" ".join(word for _, word in candidates[:count]))
            if (entry := self._commands.get(path)) is None:
                continue

            boundary = candidates[count - 1][0]
            leading = [item for item in skipped if item.index <= boundary]

            if not all(self._plausible(entry.command.flagset, item) for item in leading):
                continue

            args = []
            for item in leading:
                args.append(item.flag)
                if item.valued:
                    args.append(item.value)
            args.extend(tokens[boundary + 1:])
            return entry, args

        return None

    @staticmethod
    def _plausible(flagset, item):
        # Check a guess made during the scan against the matched FlagSet.
        name = item.flag.removeprefix("--").removeprefix("-").partition("=")[0]
        matches = [
            flag for flag in (
                flagset.lookup_short(name) if len(name) == 1 else None,
                flagset.lookup(name),
            ) if flag is not None
        ]
        if not matches:
            return item.flag in _HELP_FLAGS
        return not (item.valued and any(flag.nullary for flag in matches))

    def _missing(self, tokens):
        words = " ".join(token for token in tokens if not token.startswith("-"))
        if matches := difflib.get_close_matches(words, self._commands, n=1):
            hint = "did you mean '%s'?" % matches[0]
        else:
            hint = "run '%s --help' to list the available commands" % (self._name or "program")
        return CommandNotFoundError(
            "unknown command: %s" % " ".join(tokens),
            tokens=tuple(tokens),
            code=FaultCode.UNKNOWN_COMMAND,
            title="unknown command",
            hint=hint,
        )

    def trigger(self, fault, /, **overrides):
        """Surface fault with this dispatcher's runtime options."""
        trigger(fault, **{
            "prog": self._name,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
        } | overrides)

    def execute(self, tokens=Unset, /):
        """
        Run the command addressed by tokens.

        Order of business
        1. completion requests are answered and nothing else happens;
        2. no tokens renders general help;
        3. with a help token, command help (or general help when nothing
           resolves) is rendered;
        4. an unresolvable input is a CommandNotFoundError;
        5. the command's FlagSet parses its arguments, then
           command.run(flagset, flagset.args) is called.

        Returns whatever run() returns (None for help and completion).
        """
        tokens = self._tokenize(tokens)

        if handle_completion(self, tokens):
            return None

        if not tokens:
            self._helper()
            return None

        helped = any(token in _HELP_TOKENS for token in tokens)

        if (resolved := self._resolve(tokens)) is None:
            if helped:
                self._helper()
                return None
            self.trigger(self._missing(tokens))
            return None

        entry, args = resolved

        if helped:
            self._command_helper(entry)
            return None

        flagset = entry.command.flagset
        failure = None

        with catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                flagset.parse(args)
            except ParseError as error:
                failure = error

        for record in caught:
            if isinstance(record.message, CommandWarning):
                self.trigger(record.message)
            else:
                warnings.warn_explicit(record.message, record.category, record.filename, record.lineno)

        if failure is not None:
            self.trigger(failure)
            return None

        return entry.command.run(flagset, flagset.args)

    def run(self, tokens=Unset, /):
        """Alias of execute()."""
        return self.execute(tokens)

    def __invoke__(self, prompt=Unset):
        return self.execute(prompt)

    @staticmethod
    def _tokenize(prompt):
        # Unset: sys.argv[1:]; str: shell-split; iterable: strings as given.
        if prompt is Unset:
            return sys.argv[1:]
        if isinstance(prompt, str):
            return shlex.split(prompt)
        if isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("execute() argument must be a string or an iterable of strings")
            return tokens
        raise TypeError("execute() argument must be a string or an iterable of strings")

    def _palette(self):
        """
        Style palette shared by both help screens.

        Palette keys
        - usage-label, program-name, usage-section, description-section, footer
        - group-label, argument-description, default
        - option-name, flag-name, metavar, positional-name
        - children-title, children-table, children, children-description
        - panel-title

        Define __styles__ in __main__ to override any entry.
        """
        styles = defaultdict(str, {
            # head
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "usage-section": "bold #36C5F0",
            "description-section": "italic #A3A3A3",
            "footer": "#737373",

            # groups
            "group-label": "bold #FFFFFF",
            "argument-description": "#9CA3AF",
            "default": "dim #9CA3AF",

            # names
            "option-name": "bold #00E6FF",
            "flag-name": "bold #22C55E",
            "metavar": "bold #FFD600",
            "positional-name": "bold #FFD600",

            # commands table
            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",

            # fancy panel
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        return styler, text

    def _print(self, console, renders, title):
        renderable = Group(*renders)
        if self._fancy:
            styler, _ = self._palette()
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{title} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )
        console.print(renderable)

    def _helper(self):
        """Render the general help: usage line, commands table and footer."""
        console = Console()
        styler, text = self._palette()
        program = self._name or "program"
        renders = []

        usage = Text()
        usage.append("usage", styler("usage-label")).append(":").append(" ")
        usage.append(text(program, styler("program-name"))).append(" ")
        usage.append(text("<command> [arguments]", styler("usage-section")))
        renders.append(usage.append("\n"))

        if self._commands:
            table = Table(
                "command", "usage",
                title=text("commands", styler("children-title")),
                box=ROUNDED,
                style=styler("children-table"),
                header_style=styler("children-title"),
            )
            for path in sorted(self._commands):
                if descr := self._commands[path].usage:
                    help = text(descr, styler("children-description"))
                else:
                    help = text(f"run '{program} {path} --help' for details", styler("children-description"))
                table.add_row(text(path, styler("children")), help)
            renders.append(table)
        else:
            renders.append(text("no commands registered", styler("children-description")))

        renders.append(Text.assemble(
            "\n",
            text("use '<command> --help' for more information about a command", styler("footer")),
        ))

        self._print(console, renders, program)

    def _command_helper(self, entry):
        """Render help for one command: usage, description, options and arguments."""
        console = Console()
        styler, text = self._palette()
        program = self._name or "program"
        flagset = entry.command.flagset
        renders = []

        width = console.width - 4 * self._fancy
        padding = 2
        indent = 26

        usage = Text()
        usage.append("usage", styler("usage-label")).append(":").append(" ")
        usage.append(text(program, styler("program-name"))).append(" ")
        usage.append(text(entry.path, styler("usage-section"))).append(" ")
        usage.append(text("[options]", styler("usage-section")))
        if flagset.has_positionals or flagset.has_rest:
            usage.append(" ").append(text("[arguments]", styler("usage-section")))
        renders.append(usage.append("\n"))

        if entry.usage:
            renders.append(text(entry.usage, styler("description-section")).append("\n"))

        def section(head, descr):
            # Names column, then the description with a hanging indent.
            line = Text(" " * padding).append(head)
            if descr:
                if len(line) >= indent:
                    line.append("\n").append(" " * indent)
                else:
                    line.append(" " * (indent - len(line)))
                wrapped = descr.wrap(console, max(width - indent, 20))
                try:
                    line.append(wrapped.pop(0))
                except IndexError:
                    pass
                for segment in wrapped:
                    line.append("\n").append(" " * indent).append(segment)
            return line

        if flags := flagset.flags():
            options = Text()
            options.append(text("options", styler("group-label"))).append(":").append("\n")
            for flag in flags:
                style = "flag-name" if flag.nullary else "option-name"
                names = Text(" | ").join(
                    text(name, styler(style))
                    for name in (f"-{flag.short}" if flag.short else "", f"--{flag.name}" if flag.name else "")
                    if name
                )
                if not flag.nullary:
                    names.append(" ").append(text(f"<{flag.value.typename}>", styler("metavar")))
                descr = text(flag.usage, styler("argument-description"))
                if flag.default not in ("", "false", "0"):
                    descr = Text.assemble(descr, " " if descr else "", text(f"(default: {flag.default})", styler("default")))
                options.append(section(names, descr)).append("\n")
            renders.append(options)

        if flagset.has_positionals or flagset.has_rest:
            arguments = Text()
            arguments.append(text("arguments", styler("group-label"))).append(":").append("\n")
            for field in flagset.positionals():
                head = text(f"<{field.name}>", styler("positional-name"))
                arguments.append(section(head, text(field.usage, styler("argument-description")))).append("\n")
            if flagset.has_rest:
                head = text("[arguments ...]", styler("positional-name"))
                arguments.append(section(head, text("every literal argument", styler("argument-description"))))
                arguments.append("\n")
            renders.append(arguments)

        renders[-1].rstrip()
        self._print(console, renders, f"{program} {entry.path}")


def invoke(object, prompt=Unset, /):
    """
    Convenience runner: call object.__invoke__(prompt).

    prompt may be Unset (sys.argv[1:]), a shell-like string or an iterable of
    strings. Returns what the invoked command returns.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "CommandEntry",
    "Dispatcher",
    "invoke",
)
