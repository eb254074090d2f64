"""Render a CredentialSet for the caller's environment.

Formats:
    shell   POSIX ``export`` statements for ``eval``/``source`` (bash, zsh)
    fish    ``set -gx`` statements for fish
    json    AWS ``credential_process`` document
"""

import json

from .models import CredentialSet

OUTPUT_FORMATS = ("shell", "fish", "json")

PROFILE_VARIABLE = "AWS_PROFILE"


def _environment(credentials: CredentialSet) -> list[tuple[str, str]]:
    return [
        ("AWS_ACCESS_KEY_ID", credentials.access_key_id),
        ("AWS_SECRET_ACCESS_KEY", credentials.secret_access_key),
        ("AWS_SESSION_TOKEN", credentials.session_token),
        ("AWS_CREDENTIAL_EXPIRATION", credentials.expiration_iso()),
    ]


def _single_quote(value: str) -> str:
    return "'" + value.replace("'", "'\"'\"'") + "'"


def format_shell(credentials: CredentialSet) -> str:
    lines = [f"export {name}={_single_quote(value)}" for name, value in _environment(credentials)]
    lines.append(f"unset {PROFILE_VARIABLE}")
    return "\n".join(lines)


def format_fish(credentials: CredentialSet) -> str:
    lines = [f"set -gx {name} {_single_quote(value)}" for name, value in _environment(credentials)]
    lines.append(f"set -e {PROFILE_VARIABLE}")
    return "\n".join(lines)


def format_json(credentials: CredentialSet) -> str:
    document = {"Version": 1, **credentials.to_sts_credentials()}
    return json.dumps(document, indent=2)


def render(credentials: CredentialSet, output_format: str = "shell") -> str:
    """Render credentials in ``output_format``.

    Raises:
        ValueError: If the format is unknown
    """
    if output_format == "shell":
        return format_shell(credentials)
    elif output_format == "fish":
        return format_fish(credentials)
    elif output_format == "json":
        return format_json(credentials)
    else:
        raise ValueError(f"Unknown output format: {output_format}")
