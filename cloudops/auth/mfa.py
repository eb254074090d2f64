"""One-time MFA code providers.

The session manager depends on the CodeProvider protocol rather than on the
terminal, so automation and tests can supply codes without a TTY.
"""

from typing import Protocol

import click


class CodeProvider(Protocol):
    """Source of one-time MFA codes."""

    def get_code(self, mfa_serial: str) -> str:
        ...


class TerminalCodeProvider:
    """Prompts on the controlling terminal.

    The prompt is written to stderr so stdout stays clean for ``eval``.
    Blocks until a line is entered; the code is passed through unvalidated.
    """

    def get_code(self, mfa_serial: str) -> str:
        return click.prompt(f"Enter MFA code for {mfa_serial}", err=True, hide_input=False, type=str).strip()


class StaticCodeProvider:
    """Returns a fixed code, e.g. from ``--token-code`` or a test."""

    def __init__(self, code: str):
        self.code = code

    def get_code(self, mfa_serial: str) -> str:
        return self.code
