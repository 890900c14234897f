"""Console entry point for ``python -m lib_gelf_forwarder``.

Purpose
-------
Let packaging checks and operators run the CLI without the console script
being on ``PATH``.

System Role
-----------
Thin alias over :func:`lib_gelf_forwarder.cli.main`; the exit code comes from
:mod:`lib_cli_exit_tools`.
"""

from __future__ import annotations

from .cli import cli, main

__all__ = ["cli", "main"]

if __name__ == "__main__":
    raise SystemExit(main())
