"""CLI entrypoint for the essesseff onboarding utility.

Lists templates, creates an essesseff app, and sets up Argo CD for one or more
environments of that app.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from essesseff_onboard import __version__
from essesseff_onboard.api.client import EssesseffClient
from essesseff_onboard.api.templates import TemplateCatalog
from essesseff_onboard.apps.provisioner import AppProvisioner
from essesseff_onboard.argocd.environments import EnvironmentSetupOrchestrator
from essesseff_onboard.argocd.tools import SubprocessToolRunner, missing_tools
from essesseff_onboard.config import DEFAULT_CONFIG_FILE, OnboardSettings, validate_settings
from essesseff_onboard.errors import ConfigurationError, OnboardError
from essesseff_onboard.logging import configure_logging
from essesseff_onboard.render import (
    render_completion,
    render_created_app,
    render_environment_report,
    render_start_banner,
    render_template_listing,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_ALL_ENVIRONMENTS_FAILED = 4

REQUIRED_TOOLS_FOR_SETUP = ("git",)

EPILOG = """\
examples:
  # List all available templates
  essesseff-onboard --list-templates --config-file .essesseff

  # List templates filtered by language
  essesseff-onboard --list-templates --language go --config-file .essesseff

  # Create app and set up Argo CD for all environments
  essesseff-onboard --create-app --setup-argocd dev,qa,staging,prod --config-file .essesseff

  # Set up Argo CD only (app already exists)
  essesseff-onboard --setup-argocd dev,qa --config-file .essesseff

prerequisites:
  - kubectl installed and configured for each target environment (for --setup-argocd)
  - the GitHub organization has the essesseff GitHub App installed and is linked
    to the essesseff account
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="essesseff-onboard",
        description="essesseff Onboarding Utility - automates essesseff app creation and Argo CD setup",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"essesseff-onboard {__version__}")
    parser.add_argument(
        "--list-templates",
        action="store_true",
        help="List all available templates (global and account-specific)",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Filter templates by language (go, python, node, java)",
    )
    parser.add_argument("--create-app", action="store_true", help="Create a new essesseff app")
    parser.add_argument(
        "--setup-argocd",
        metavar="ENVS",
        default="",
        help="Comma-separated list of environments (dev,qa,staging,prod)",
    )
    parser.add_argument(
        "--config-file",
        default=str(DEFAULT_CONFIG_FILE),
        help="Path to configuration file (default: .essesseff)",
    )
    parser.add_argument(
        "--workspace-dir",
        default=".",
        help="Directory where the per-environment Argo CD repositories are cloned",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not (args.list_templates or args.create_app or args.setup_argocd):
        parser.error(
            "At least one action must be specified (--list-templates, --create-app, or --setup-argocd)"
        )

    started = datetime.now(UTC)
    print(render_start_banner(started))

    exit_code = EXIT_FAILURE
    try:
        exit_code = _run(args)
    finally:
        print(render_completion(ok=exit_code == EXIT_OK, started=started, finished=datetime.now(UTC)))
    return exit_code


def _run(args: argparse.Namespace) -> int:
    setup_argocd: str = args.setup_argocd

    try:
        settings = OnboardSettings.from_file(Path(args.config_file))
        validate_settings(settings, create_app=args.create_app, setup_argocd=bool(setup_argocd))
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print(f"Error: Invalid configuration in {args.config_file}:", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(
        "DEBUG" if args.verbose else settings.log_level,
        json_output=settings.log_format == "json",
    )
    logger.info("Configuration loaded", extra={"config_file": args.config_file})

    tools = SubprocessToolRunner()
    if setup_argocd:
        missing = missing_tools(tools, REQUIRED_TOOLS_FOR_SETUP)
        if missing:
            print(f"Error: Missing required dependencies: {' '.join(missing)}", file=sys.stderr)
            return EXIT_FAILURE

    try:
        with EssesseffClient.from_settings(settings) as client:
            catalog = TemplateCatalog(client=client, account_slug=settings.account_slug)

            if args.list_templates:
                listing = catalog.list_templates(args.language)
                print(render_template_listing(listing, language=args.language))
                return EXIT_OK

            if args.create_app:
                provisioner = AppProvisioner(client=client, catalog=catalog, settings=settings)
                created = provisioner.create_app()
                print(render_created_app(created))

            if setup_argocd:
                orchestrator = EnvironmentSetupOrchestrator(
                    client=client,
                    settings=settings,
                    tools=tools,
                    workspace_root=Path(args.workspace_dir),
                )
                report = orchestrator.setup_environments(setup_argocd)
                print(render_environment_report(report))
                if report.all_failed:
                    return EXIT_ALL_ENVIRONMENTS_FAILED

            return EXIT_OK

    except OnboardError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
