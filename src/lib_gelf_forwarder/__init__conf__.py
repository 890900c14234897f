"""Static package metadata surfaced by the CLI banner.

The values mirror ``pyproject.toml`` so ``lib_gelf_forwarder info`` works in
editable checkouts without touching ``importlib.metadata``.
"""

from __future__ import annotations

from typing import Callable

name = "lib_gelf_forwarder"
title = "Forward exceptions and log events to Graylog via GELF over UDP"
version = "0.1.0"
homepage = "https://github.com/bitranox/lib_gelf_forwarder"
author = "bitranox"
author_email = "bitranox@gmail.com"
shell_command = "lib_gelf_forwarder"


def print_info(writer: Callable[[str], None] | None = None) -> None:
    """Write the metadata banner through ``writer`` (defaults to ``print``).

    Examples
    --------
    >>> lines = []
    >>> print_info(writer=lines.append)
    >>> lines[0]
    'Info for lib_gelf_forwarder:\\n'
    """

    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("homepage", homepage),
        ("author", author),
        ("author_email", author_email),
        ("shell_command", shell_command),
    ]
    pad = max(len(label) for label, _ in fields)
    lines = [f"Info for {name}:\n", "\n"]
    lines.extend(f"    {label.ljust(pad)} = {value}\n" for label, value in fields)
    if writer is None:
        print("".join(lines), end="")
        return
    for line in lines:
        writer(line)


__all__ = ["author", "author_email", "homepage", "name", "print_info", "shell_command", "title", "version"]
