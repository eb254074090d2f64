#!/usr/bin/env python3
"""
cloudops command-line interface

Commands:
    assume-role   Assume an IAM role (MFA, caching) and print credentials for eval
    cleanup       Delete stale resources from a Kubernetes cluster
    config        Inspect and edit the cloudops settings file

Usage:
    eval "$(cloudops assume-role arn:aws:iam::123456789012:role/Admin)"
    cloudops cleanup --dry-run evicted failed
    cloudops config show

assume-role and cleanup are also installed as the standalone
``assume-role`` and ``cluster-cleanup`` commands.

Module: cli
"""

import json
import sys
from typing import Any, Optional

import click
import structlog
from dotenv import load_dotenv

from .auth import (
    CredentialCache,
    RequestValidationError,
    RoleAssumptionError,
    RoleAssumptionRequest,
    RoleManager,
    StaticCodeProvider,
    TerminalCodeProvider,
)
from .auth.models import MAX_DURATION_SECONDS, MIN_DURATION_SECONDS
from .auth.output import OUTPUT_FORMATS, render
from .cluster import ClusterCleaner, ClusterConnectionError, connect, expand_actions
from .cluster.models import ACTION_CHOICES
from .config_schema import Settings
from .logging_config import configure_logging
from .version import __version__
from .xdg_config import ConfigError, XDGConfig

logger = structlog.get_logger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string"""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Print an error to stderr and exit 1"""
    if verbose:
        click.echo(f"Error: {type(error).__name__}: {error}", err=True)
        import traceback

        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def bootstrap(verbose: bool, config_profile: Optional[str] = None) -> Settings:
    """Load .env and settings, then configure logging for this invocation."""
    load_dotenv(override=False)
    try:
        settings = XDGConfig(profile=config_profile).load_settings()
    except ConfigError as e:
        handle_error(e, verbose)
    configure_logging(level=settings.log_level, log_format=settings.log_format, verbose=verbose)
    return settings


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="cloudops")
def cli():
    """
    cloudops - AWS role assumption and Kubernetes cleanup helpers
    """
    pass


@click.command(name="assume-role", context_settings=CONTEXT_SETTINGS)
@click.argument("role_arn", type=str)
@click.option("--mfa-serial", "-m", help="MFA device ARN (auto-detected if not specified)")
@click.option("--token-code", "-t", help="MFA code; skips the interactive prompt")
@click.option("--external-id", "-e", help="External ID for cross-account roles")
@click.option(
    "--duration",
    "-d",
    type=click.IntRange(MIN_DURATION_SECONDS, MAX_DURATION_SECONDS),
    help="Session duration in seconds [default: 3600]",
)
@click.option("--session-name", "-s", help="Session name [default: assumed-role-session-<pid>]")
@click.option("--profile", "-p", "source_profile", help="AWS CLI profile for source credentials")
@click.option("--region", "-r", help="AWS region")
@click.option("--no-cache", "-c", is_flag=True, help="Disable session caching")
@click.option(
    "--format", "-f", "output_format", type=click.Choice(OUTPUT_FORMATS), help="Output format [default: shell]"
)
@click.option("--config-profile", envvar="CLOUDOPS_PROFILE", help="cloudops settings profile")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def assume_role(
    role_arn: str,
    mfa_serial: Optional[str],
    token_code: Optional[str],
    external_id: Optional[str],
    duration: Optional[int],
    session_name: Optional[str],
    source_profile: Optional[str],
    region: Optional[str],
    no_cache: bool,
    output_format: Optional[str],
    config_profile: Optional[str],
    verbose: bool,
):
    """
    Assume an IAM role and print its credentials as environment assignments

    Cached credentials are reused while more than 5 minutes remain. Only the
    assignments are written to stdout; prompts and logs go to stderr.

    Examples:
        eval "$(cloudops assume-role arn:aws:iam::123456789012:role/Admin)"
        cloudops assume-role ROLE_ARN -e partner-id -d 7200 --profile corp
        cloudops assume-role ROLE_ARN --format fish | source
    """
    settings = bootstrap(verbose, config_profile)
    defaults = settings.assume_role

    try:
        request = RoleAssumptionRequest.build(
            role_arn=role_arn,
            mfa_serial=mfa_serial,
            external_id=external_id,
            duration_seconds=duration if duration is not None else defaults.duration,
            session_name=session_name,
            source_profile=source_profile or defaults.source_profile,
            region=region or defaults.region,
            use_cache=False if no_cache else defaults.use_cache,
        )
    except RequestValidationError as e:
        handle_error(e)

    manager = RoleManager(
        cache=CredentialCache(defaults.cache_dir),
        code_provider=StaticCodeProvider(token_code) if token_code else TerminalCodeProvider(),
    )

    try:
        credentials = manager.resolve(request)
    except RoleAssumptionError as e:
        handle_error(e)

    click.echo(render(credentials, output_format or defaults.output_format))


@click.command(name="cleanup", context_settings=CONTEXT_SETTINGS)
@click.argument("actions", nargs=-1, type=click.Choice(ACTION_CHOICES))
@click.option("--namespace", "-n", help="Target specific namespace (default: all namespaces)")
@click.option("--dry-run", "-d", is_flag=True, help="Show what would be deleted without deleting")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--kubeconfig", type=click.Path(dir_okay=False), help="Path to kubeconfig file")
@click.option("--context", "kube_context", help="Kubeconfig context to use")
@click.option("--config-profile", envvar="CLOUDOPS_PROFILE", help="cloudops settings profile")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cleanup(
    actions: tuple[str, ...],
    namespace: Optional[str],
    dry_run: bool,
    yes: bool,
    kubeconfig: Optional[str],
    kube_context: Optional[str],
    config_profile: Optional[str],
    verbose: bool,
):
    """
    Delete stale resources from a Kubernetes cluster

    \b
    ACTIONS:
        evicted     Delete pods in Evicted state
        failed      Delete pods in Failed state (Error, OOMKilled, etc.)
        completed   Delete completed/succeeded pods
        jobs        Delete completed Jobs that have no owner (not managed by a CronJob)
        stuck-ns    Force-finalize namespaces stuck in Terminating state
        all         Run all cleanup actions

    Always asks for confirmation unless --dry-run or --yes is given.
    Removing namespace finalizers orphans whatever they were guarding.

    Examples:
        cloudops cleanup --dry-run evicted
        cloudops cleanup -n production failed
        cloudops cleanup all
    """
    if not actions:
        raise click.UsageError("No action specified")

    settings = bootstrap(verbose, config_profile)
    defaults = settings.cleanup

    try:
        clients = connect(kubeconfig or defaults.kubeconfig, kube_context or defaults.context)
    except ClusterConnectionError as e:
        logger.error(str(e))
        sys.exit(1)

    if dry_run:
        logger.warning("Running in DRY-RUN mode - no changes will be made", context=clients.context)
    elif not yes:
        logger.warning("This will delete resources from your cluster!", context=clients.context)
        if not click.confirm("Continue?", default=False, err=True):
            logger.info("Aborted")
            return

    cleaner = ClusterCleaner(
        clients,
        namespace=namespace or defaults.namespace,
        dry_run=dry_run,
        verbose=verbose,
    )
    results = cleaner.run(expand_actions(list(actions)))

    logger.debug("Cleanup results", results=[result.to_dict() for result in results])
    logger.info(
        "Cleanup complete!",
        deleted=sum(len(result.deleted) for result in results),
        failed=sum(len(result.failed) for result in results),
    )


@click.group(name="config", context_settings=CONTEXT_SETTINGS)
def config_group():
    """
    Inspect and edit the cloudops settings file
    """
    pass


@config_group.command(name="show")
@click.option("--profile", "-p", help="Settings profile (default: $CLOUDOPS_PROFILE or default)")
@click.option("--pretty/--compact", default=True, help="Pretty print JSON output", show_default=True)
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def show(profile: Optional[str], pretty: bool, verbose: bool):
    """
    Show effective settings (files merged, environment applied, defaults filled in)

    Examples:
        cloudops config show
        cloudops config show --profile prod --compact
    """
    try:
        settings = XDGConfig(profile=profile).load_settings()
        click.echo(format_json(settings.model_dump(by_alias=True, mode="json"), pretty=pretty))
    except ConfigError as e:
        handle_error(e, verbose)


@config_group.command(name="validate")
@click.option("--profile", "-p", help="Settings profile (default: $CLOUDOPS_PROFILE or default)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def validate(profile: Optional[str], verbose: bool):
    """
    Validate settings against the schema

    Examples:
        cloudops config validate
        cloudops config validate --profile dev
    """
    xdg = XDGConfig(profile=profile)
    try:
        xdg.load_settings()
    except ConfigError as e:
        click.echo(f"✗ {xdg.profile} - Invalid", err=True)
        handle_error(e, verbose)
    click.echo(f"✓ {xdg.profile} - Valid", err=True)


@config_group.command(name="list")
def list_profiles():
    """
    List all available settings profiles
    """
    xdg = XDGConfig()
    click.echo("Available profiles:", err=True)
    for profile in xdg.list_profiles():
        marker = "" if xdg.get_config_path(profile).exists() else " (no file)"
        click.echo(f"  {profile}{marker}")


@config_group.command(name="path")
@click.option("--profile", "-p", help="Settings profile (default: $CLOUDOPS_PROFILE or default)")
def path(profile: Optional[str]):
    """
    Print the settings file path
    """
    click.echo(str(XDGConfig(profile=profile).get_config_path()))


@config_group.command(name="get")
@click.argument("key", type=str)
@click.option("--profile", "-p", help="Settings profile (default: $CLOUDOPS_PROFILE or default)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def get(key: str, profile: Optional[str], verbose: bool):
    """
    Get an effective setting value

    Supports nested keys with dot notation (e.g., "assumeRole.duration")

    Examples:
        cloudops config get logLevel
        cloudops config get assumeRole.cacheDir
    """
    try:
        settings = XDGConfig(profile=profile).load_settings()
    except ConfigError as e:
        handle_error(e, verbose)

    value: Any = settings.model_dump(by_alias=True, mode="json")
    for key_part in key.split("."):
        if isinstance(value, dict) and key_part in value:
            value = value[key_part]
        else:
            click.echo(f"Key not found: {key}", err=True)
            sys.exit(1)

    if isinstance(value, (dict, list)):
        click.echo(format_json(value, pretty=True))
    else:
        click.echo("" if value is None else str(value))


@config_group.command(name="set")
@click.argument("key", type=str)
@click.argument("value", type=str)
@click.option("--profile", "-p", help="Settings profile to write (default: $CLOUDOPS_PROFILE or default)")
@click.option("--json", "-j", "as_json", is_flag=True, help="Parse value as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def set_value(key: str, value: str, profile: Optional[str], as_json: bool, verbose: bool):
    """
    Set a setting in the profile's settings file

    The updated file is validated before it is written.

    Examples:
        cloudops config set logLevel DEBUG
        cloudops config set assumeRole.duration 7200 --json
        cloudops config set cleanup.namespace staging --profile dev
    """
    try:
        xdg = XDGConfig(profile=profile)
        config_data = xdg.read_config() or {}

        parsed_value = json.loads(value) if as_json else value

        key_parts = key.split(".")
        current = config_data
        for key_part in key_parts[:-1]:
            if not isinstance(current.get(key_part), dict):
                current[key_part] = {}
            current = current[key_part]
        current[key_parts[-1]] = parsed_value

        Settings.model_validate(config_data)

        config_path = xdg.write_config(config_data)
        click.echo(f"✓ {key} = {parsed_value}", err=True)
        click.echo(f"✓ Configuration updated: {config_path}", err=True)

    except (ConfigError, ValueError) as e:
        handle_error(e, verbose)


cli.add_command(assume_role)
cli.add_command(cleanup)
cli.add_command(config_group)


if __name__ == "__main__":
    cli()
