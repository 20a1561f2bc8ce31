"""
Helmsman shell completion.

Scope
- Completion: one candidate (value, description, nullary).
- Flag level: long_flags(), short_flags(), flag_completions() for a FlagSet.
- Command level: command_completions() over a dispatcher's registered paths.
- bash/zsh: candidate lines for a partially typed command line, and the
  scripts a user sources to wire the program into their shell.
- handle_completion(): recognize completion requests in an argument vector
  and print the answer.

Protocol
- Bash calls the program with COMP_LINE set (or with "--complete-bash" and
  the words typed so far) and reads one candidate per line.
- Zsh calls "--complete-zsh" and reads "value:description" lines.
- "--generate-bash-completion" / "--generate-zsh-completion" print a script.

Works with any object offering the dispatcher surface used here (name,
entries(), find()), so this module does not import the dispatcher.
"""
import os
from typing import NamedTuple

from rich.console import Console

from .flagset import FlagSet


class Completion(NamedTuple):
    value: str
    description: str = ""
    nullary: bool = False


def _longs(flagset):
    # Only names still pointing at their flag (re-registration replaces).
    for flag in flagset.flags():
        if flag.name and flagset.lookup(flag.name) is flag:
            yield flag.name, flag


def _shorts(flagset):
    for flag in flagset.flags():
        if flag.short and flagset.lookup_short(flag.short) is flag:
            yield flag.short, flag


def long_flags(flagset, /):
    """All long flags as "--name", sorted."""
    return sorted(f"--{name}" for name, _ in _longs(flagset))


def short_flags(flagset, /):
    """All short flags as "-c", sorted."""
    return sorted(f"-{short}" for short, _ in _shorts(flagset))


def flag_completions(flagset, prefix="", /):
    """
    Candidates for the word being typed.

    - "--x": long names starting with "x".
    - "-" or "-x": every short flag, or the one matching "x".
    - "": everything.
    - anything else: nothing.
    """
    completions = []

    if prefix.startswith("--"):
        search = prefix[2:]
        for name, flag in _longs(flagset):
            if name.startswith(search):
                completions.append(Completion(f"--{name}", flag.usage, flag.nullary))
    elif prefix.startswith("-") and len(prefix) <= 2:
        if len(prefix) == 1:
            for short, flag in _shorts(flagset):
                completions.append(Completion(f"-{short}", flag.usage, flag.nullary))
        elif (flag := flagset.lookup_short(prefix[1])) is not None:
            completions.append(Completion(prefix, flag.usage, flag.nullary))
    elif prefix == "":
        for name, flag in _longs(flagset):
            completions.append(Completion(f"--{name}", flag.usage, flag.nullary))
        for short, flag in _shorts(flagset):
            completions.append(Completion(f"-{short}", flag.usage, flag.nullary))

    return sorted(completions, key=lambda x: x.value)


def command_completions(dispatcher, prefix="", /):
    """Registered paths starting with prefix (whitespace-normalized), sorted."""
    prefix = " ".join(prefix.split())
    return sorted(
        (
            Completion(path, entry.usage)
            for path, entry in dispatcher.entries().items()
            if path.startswith(prefix)
        ),
        key=lambda x: x.value,
    )


def _expects_value(flagset, words):
    # True when the word before the current one is a flag waiting for its value.
    if len(words) < 2 or not (previous := words[-2]).startswith("-"):
        return False
    if (flag := flagset.lookup(previous.lstrip("-"))) is not None and not flag.nullary:
        return True
    if len(previous) == 2 and (flag := flagset.lookup_short(previous[1])) is not None and not flag.nullary:
        return True
    return False


def _described(completions):
    return [f"{x.value}:{x.description}" if x.description else x.value for x in completions]


def bash_completions(target, words, /):
    """Candidate lines for bash, given the words typed after the program name."""
    words = list(words)

    if isinstance(target, FlagSet):
        if not words or _expects_value(target, words):
            return []
        return [x.value for x in flag_completions(target, words[-1])]

    if not words:
        return [x.value for x in command_completions(target)]

    entry, remaining = target.find(words)
    if entry is None:
        return [x.value for x in command_completions(target, " ".join(words))]

    flagset = entry.command.flagset
    if _expects_value(flagset, remaining):
        return []
    return [x.value for x in flag_completions(flagset, words[-1])]


def zsh_completions(target, words, /):
    """Candidate "value:description" lines for zsh."""
    words = list(words)

    if isinstance(target, FlagSet):
        return _described(flag_completions(target))

    lines = _described(command_completions(target))
    if words:
        entry, _ = target.find(words)
        if entry is not None:
            lines += _described(flag_completions(entry.command.flagset))
    return lines


def _quoted(text):
    return text.replace("'", "'\"'\"'")


def bash_script(program, /):
    """Script wiring program into bash's programmable completion."""
    return (
        f"# Bash completion for {program}\n"
        f"_{program}_completion() {{\n"
        "    local cur prev words cword\n"
        "    _init_completion || return\n"
        "\n"
        "    # Get completions from the program\n"
        f"    local completions=$({program} --complete-bash \"${{COMP_WORDS[@]:1:$COMP_CWORD}}\")\n"
        "    COMPREPLY=( $(compgen -W \"$completions\" -- \"$cur\") )\n"
        "}\n"
        "\n"
        f"complete -F _{program}_completion {program}\n"
    )


def flagset_zsh_script(flagset, program, /):
    """Zsh script describing every flag of a single FlagSet."""
    lines = [f"#compdef {program}", "", f"_{program}() {{", "    local -a flags", "    flags=("]
    for flag in flagset.flags():
        description = _quoted(flag.usage)
        if flag.name:
            lines.append(
                f"        '--{flag.name}[{description}]'" if flag.nullary else
                f"        '--{flag.name}=[{description}]:value'"
            )
        if flag.short:
            lines.append(
                f"        '-{flag.short}[{description}]'" if flag.nullary else
                f"        '-{flag.short}[{description}]:value'"
            )
    lines += ["    )", "    _arguments -s $flags", "}", "", f"_{program}", ""]
    return "\n".join(lines)


def zsh_script(dispatcher, /):
    """Zsh script offering the dispatcher's commands."""
    program = dispatcher.name or "program"
    lines = [f"#compdef {program}", "", f"_{program}() {{", "    local -a commands", "    commands=("]
    for completion in command_completions(dispatcher):
        if completion.description:
            lines.append(f"        '{completion.value}[{_quoted(completion.description)}]'")
        else:
            lines.append(f"        '{completion.value}'")
    lines += ["    )", "", "    _describe 'command' commands", "}", "", f"_{program}", ""]
    return "\n".join(lines)


def handle_completion(target, words, /):
    """
    Answer a completion request found in words, if any.

    target is a FlagSet or a dispatcher. Returns True when the request was
    handled (and output printed), False when words is an ordinary invocation.
    """
    words = list(words)
    program = target.name or "program"
    console = Console(soft_wrap=True, markup=False, highlight=False, emoji=False)

    if os.environ.get("COMP_LINE"):
        lines = bash_completions(target, words)
    elif not words:
        return False
    elif words[0] == "--complete-bash":
        lines = bash_completions(target, words[1:])
    elif words[0] == "--complete-zsh":
        lines = zsh_completions(target, words[1:])
    elif words[0] == "--generate-bash-completion":
        console.print(bash_script(program), end="")
        return True
    elif words[0] == "--generate-zsh-completion":
        script = flagset_zsh_script(target, program) if isinstance(target, FlagSet) else zsh_script(target)
        console.print(script, end="")
        return True
    else:
        return False

    for line in lines:
        console.print(line)
    return True


__all__ = (
    "Completion",
    "long_flags",
    "short_flags",
    "flag_completions",
    "command_completions",
    "bash_completions",
    "zsh_completions",
    "bash_script",
    "flagset_zsh_script",
    "zsh_script",
    "handle_completion",
)
