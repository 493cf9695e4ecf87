"""CLI entrypoint for kamal-secrets-sync."""
import sys
import argparse
import logging
from pathlib import Path

from .validators import validate_project_name, validate_timeout

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _set_verbosity(verbose: int) -> None:
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


def _settings_from_args(args):
    from kamal_secrets_sync.secrets.domains.config_loader import load_settings

    overrides = {
        "project": getattr(args, "project", None),
        "manifest_path": getattr(args, "manifest", None),
        "env_file": getattr(args, "env_file", None),
        "reference_path": getattr(args, "reference", None),
        "timeout": getattr(args, "timeout", None),
    }
    if overrides["project"] is not None:
        validate_project_name(overrides["project"])
    if overrides["timeout"] is not None:
        validate_timeout(overrides["timeout"])
    return load_settings(overrides)


def cmd_version(args):
    """Show version information."""
    print(f"kamal-secrets-sync {VERSION}")


def cmd_check(args):
    """Check that the bws CLI and access token are available."""
    from kamal_secrets_sync.secrets.domains.bws_client import BwsSecretClient

    settings = _settings_from_args(args)
    client = BwsSecretClient(timeout=settings.timeout, access_token_env=settings.access_token_env)
    status = client.check()

    print("Checking Bitwarden Secrets Manager prerequisites...\n")
    if status["executable"]:
        print("Success: bws CLI found in PATH")
    else:
        print("Error: bws CLI not found in PATH")
        print("  Install it from https://bitwarden.com/help/secrets-manager-cli/")

    if status["access_token"]:
        print(f"Success: {settings.access_token_env} is set")
    else:
        print(f"Error: {settings.access_token_env} is not set")
        print(f"  Export a machine account access token: export {settings.access_token_env}=...")

    if not all(status.values()):
        sys.exit(1)
    print("\nSuccess: All checks passed")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from kamal_secrets_sync.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from kamal_secrets_sync.secrets.domains.config_loader import default_config_path
    from kamal_secrets_sync.secrets.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found, built-in defaults apply)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from kamal_secrets_sync.secrets.domains.config_loader import default_config_path
    from kamal_secrets_sync.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_secrets_sync(args):
    """Push local secrets declared in the manifest to the registry project."""
    from kamal_secrets_sync.secrets.workflows.sync_operations import format_result, sync_secrets

    settings = _settings_from_args(args)
    result = sync_secrets(
        settings,
        dry_run=args.dry_run,
        write_reference=not args.no_reference,
    )
    print(format_result(result))

    if result.report is not None and not result.report.ok:
        sys.exit(1)
    sys.exit(0)


def cmd_secrets_reference(args):
    """Regenerate the Kamal secrets file only."""
    from kamal_secrets_sync.secrets.workflows.sync_operations import regenerate_reference

    settings = _settings_from_args(args)
    path = regenerate_reference(settings)
    print(f"Deployment reference written to {path}")


def _add_source_arguments(parser, with_env_file=True):
    parser.add_argument(
        "--project",
        help="Registry project name (default: KAMAL_SECRETS_PROJECT, config file, or manifest 'service')"
    )
    parser.add_argument(
        "--manifest",
        help="Path to the Kamal deploy manifest (default: config/deploy.yml)"
    )
    if with_env_file:
        parser.add_argument(
            "--env-file",
            help="Path to the local KEY=VALUE file (default: .env)"
        )
    parser.add_argument(
        "--reference",
        help="Path of the generated Kamal secrets file (default: .kamal/secrets)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for each bws call (default: 30)"
    )


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (missing files, registry failures, failed entries)
        2 - Usage errors (invalid arguments)
    """
    parser = argparse.ArgumentParser(
        prog="kamal-secrets-sync",
        description="Sync secrets declared in a Kamal deploy manifest to Bitwarden Secrets Manager",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (missing manifest or env file, registry failure, failed entries)
  2 - Usage error (invalid arguments)

Environment variables:
  BWS_ACCESS_TOKEN       - Bitwarden machine account access token
  KAMAL_SECRETS_PROJECT  - Registry project name (overrides config file)

Configuration:
  Default location: ~/.config/kamal-secrets-sync/config.yml
  Custom path: Set with 'kamal-secrets-sync config set-path <path>'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v for progress, -vv for registry calls)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of kamal-secrets-sync"
    )

    subparsers.add_parser(
        "check",
        help="Check bws CLI and access token",
        description="Verify the bws CLI is installed and the access token variable is set"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage kamal-secrets-sync configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/kamal-secrets-sync/preferences.json
        """
    )
    config_set_path_parser.add_argument(
        "path",
        help="Path to config file"
    )

    config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the current configuration file path and its source"
    )

    config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference and fall back to the default location"
    )

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret synchronisation operations",
        description="Synchronise Kamal secrets with Bitwarden Secrets Manager"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    sync_parser = secrets_subparsers.add_parser(
        "sync",
        help="Create or update registry secrets from the local env file",
        description="""
Read the secret names from the deploy manifest, look up their values in the
local env file and create or update them in the registry project.

Keys missing from the env file are skipped with a warning. A failing
create/update is reported and the run continues with the next key.
Afterwards the Kamal secrets file is regenerated.

Exit codes:
  0 - All entries applied or skipped
  1 - Fatal error, or at least one entry failed
        """
    )
    _add_source_arguments(sync_parser)
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the plan without changing the registry or the reference file"
    )
    sync_parser.add_argument(
        "--no-reference",
        action="store_true",
        help="Do not regenerate the Kamal secrets file"
    )

    reference_parser = secrets_subparsers.add_parser(
        "reference",
        help="Regenerate the Kamal secrets file",
        description="Write the Kamal secrets file for the project without syncing values"
    )
    _add_source_arguments(reference_parser, with_env_file=False)

    args = parser.parse_args()
    _set_verbosity(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "check":
            cmd_check(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        elif args.command == "secrets":
            if args.secrets_command == "sync":
                cmd_secrets_sync(args)
            elif args.secrets_command == "reference":
                cmd_secrets_reference(args)
            else:
                secrets_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
