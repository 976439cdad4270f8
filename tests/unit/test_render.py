from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from essesseff_onboard.api.templates import TemplateListing, TemplateSummary
from essesseff_onboard.apps.provisioner import CreatedApp
from essesseff_onboard.argocd.environments import EnvironmentOutcome, EnvironmentSetupReport
from essesseff_onboard.argocd.state_machine import EnvironmentState
from essesseff_onboard.render import (
    format_elapsed,
    render_completion,
    render_created_app,
    render_environment_report,
    render_template_listing,
)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0s"), (59.9, "59s"), (60, "1m 0s"), (125, "2m 5s"), (3723, "1h 2m 3s"), (-4, "0s")],
)
def test_format_elapsed(seconds: float, expected: str) -> None:
    assert format_elapsed(seconds) == expected


def test_completion_block_reports_status_and_elapsed() -> None:
    started = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

    ok = render_completion(ok=True, started=started, finished=started + timedelta(seconds=65))
    failed = render_completion(ok=False, started=started, finished=started)

    assert "✓ Completed successfully" in ok
    assert "Started:  2026-01-02 03:04:05 UTC" in ok
    assert "Elapsed:  1m 5s" in ok
    assert "✗ Completed with errors" in failed


def test_template_listing_rows_global_then_account() -> None:
    listing = TemplateListing(
        global_templates=[TemplateSummary("go-hello-world", "go", "Hello world in Go")],
        account_templates=[TemplateSummary("team-svc", "python", "N/A")],
    )

    text = render_template_listing(listing, language="go")
    lines = text.splitlines()

    assert "Available Templates (go):" in lines
    header = next(i for i, line in enumerate(lines) if line.startswith("Type "))
    assert lines[header].split() == ["Type", "Name", "Language", "Description"]
    assert lines[header + 2].split() == ["Global", "go-hello-world", "go", "Hello", "world", "in", "Go"]
    assert lines[header + 3].split() == ["Account", "team-svc", "python", "N/A"]


def test_created_app_lists_repositories() -> None:
    text = render_created_app(
        CreatedApp("hello-app", {"source": "hello-app", "argocd-dev": "hello-app-argocd-dev"})
    )

    assert "✓ App 'hello-app' created successfully!" in text
    assert "  - argocd-dev: hello-app-argocd-dev" in text


def test_environment_report_tallies_and_next_steps(tmp_path: Path) -> None:
    report = EnvironmentSetupReport(
        outcomes=[
            EnvironmentOutcome("dev", EnvironmentState.DONE, "done", tmp_path),
            EnvironmentOutcome(
                "qa",
                EnvironmentState.FAILED,
                "kubectl is not installed or not in PATH\n\nHelp: install it",
                tmp_path,
                failed_at=EnvironmentState.PREFLIGHT,
            ),
        ],
        skipped=["bogus"],
    )

    text = render_environment_report(report)

    assert "  ✓ dev: done" in text
    assert "  ✗ qa: kubectl is not installed or not in PATH" in text
    assert "  - bogus: skipped" in text
    assert "1 succeeded, 1 failed, 1 skipped" in text
    assert "Next steps:" in text


def test_environment_report_without_success_has_no_next_steps(tmp_path: Path) -> None:
    report = EnvironmentSetupReport(
        outcomes=[EnvironmentOutcome("dev", EnvironmentState.FAILED, "boom", tmp_path)]
    )

    assert "Next steps:" not in render_environment_report(report)
