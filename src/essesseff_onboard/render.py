"""Plain-text rendering of CLI output: banners, template tables, run summaries."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from essesseff_onboard.api.templates import TemplateListing, TemplateSummary
from essesseff_onboard.apps.provisioner import CreatedApp
from essesseff_onboard.argocd.environments import EnvironmentSetupReport

RULE = "=" * 80
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

_TABLE_ROW = "{:<10} {:<40} {:<10} {}"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def format_elapsed(seconds: float) -> str:
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def render_start_banner(started: datetime) -> str:
    return "\n".join(
        [
            "",
            RULE,
            "essesseff Onboarding Utility",
            f"Started: {format_timestamp(started)}",
            RULE,
            "",
        ]
    )


def render_completion(*, ok: bool, started: datetime, finished: datetime) -> str:
    status = "✓ Completed successfully" if ok else "✗ Completed with errors"
    return "\n".join(
        [
            "",
            RULE,
            status,
            f"Started:  {format_timestamp(started)}",
            f"Finished: {format_timestamp(finished)}",
            f"Elapsed:  {format_elapsed((finished - started).total_seconds())}",
            RULE,
            "",
        ]
    )


def _rows(kind: str, templates: Sequence[TemplateSummary]) -> list[str]:
    return [_TABLE_ROW.format(kind, t.name, t.language, t.description) for t in templates]


def render_template_listing(listing: TemplateListing, *, language: str | None = None) -> str:
    title = f"Available Templates ({language}):" if language else "Available Templates:"
    lines = [
        "",
        title,
        "",
        _TABLE_ROW.format("Type", "Name", "Language", "Description"),
        _TABLE_ROW.format("----", "----", "--------", "-----------"),
    ]
    lines.extend(_rows("Global", listing.global_templates))
    lines.extend(_rows("Account", listing.account_templates))
    lines.append("")
    return "\n".join(lines)


def render_created_app(created: CreatedApp) -> str:
    lines = ["", f"✓ App '{created.app_name}' created successfully!", "", "Repository names:"]
    lines.extend(f"  - {key}: {value}" for key, value in created.resultant_repos.items())
    lines.extend(
        [
            "",
            "App creation completed. All repositories have been created and configured.",
        ]
    )
    return "\n".join(lines)


def render_environment_report(report: EnvironmentSetupReport) -> str:
    lines = ["", "Argo CD setup results:"]
    if not report.outcomes and not report.skipped:
        lines.append("  (no environments given)")
    for outcome in report.outcomes:
        mark = "✓" if outcome.succeeded else "✗"
        lines.append(f"  {mark} {outcome.environment}: {outcome.message.splitlines()[0]}")
    for name in report.skipped:
        lines.append(f"  - {name or '(blank)'}: skipped (not a valid environment name)")

    lines.append("")
    lines.append(
        f"{len(report.succeeded)} succeeded, {len(report.failed)} failed, "
        f"{len(report.skipped)} skipped"
    )

    if report.succeeded:
        lines.extend(
            [
                "",
                "Next steps:",
                "  - Verify setup via essesseff.com UI",
                "  - Check Argo CD UI for applications and sync status",
                "  - Confirm notifications are configured in Argo CD",
            ]
        )
    lines.append("")
    return "\n".join(lines)
