"""
Validation Reporter Module.

Renders validator results as plain-text reports with remediation
guidelines grouped by problem type, and exports them as JSON for CI.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from ncw_ops.core.validation.external_apps import ExternalAppsReport
from ncw_ops.core.validation.shell_config import ShellConfigViolation
from ncw_ops.core.validation.uniqueness import UniquenessReport
from ncw_ops.schemas.config import CATEGORY_NAMES, category_label

DYNAMIC_LABELS = [category_label(name) for name in CATEGORY_NAMES if name != "special"]


class ValidationReporter:
    """
    Generate reports from validation runs.

    """

    def __init__(self, output_dir: Path | None = None):
        """
        Initialize reporter.

        Args:
            output_dir: Directory for written reports; nothing is written
                when omitted
        """
        self.output_dir = Path(output_dir) if output_dir else None
        if self.output_dir:
            self.output_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, text: str, filename: str | None) -> None:
        if filename and self.output_dir:
            with open(self.output_dir / filename, "w", encoding="utf-8") as f:
                f.write(text)

    @staticmethod
    def _header(title: str) -> list[str]:
        return [
            "=" * 70,
            title,
            "=" * 70,
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
        ]

    def generate_uniqueness_report(
        self,
        report: UniquenessReport,
        excluded_targets: list[str] | None = None,
        filename: str | None = None,
    ) -> str:
        """
        Render the app list uniqueness validation.

        Args:
            report: Validator result
            excluded_targets: Hand-written targets exempt from the conflict check
            filename: Output filename (optional)

        Returns:
            Report text
        """
        lines = self._header("APP LIST UNIQUENESS VALIDATION")

        if report.duplicates or report.repeated:
            lines.append("DUPLICATE APPS")
            lines.append("-" * 40)
            for entry in report.duplicates:
                lines.append(f"ERROR: {entry.describe()}")
            for app, category in report.repeated:
                lines.append(f'ERROR: App "{app}" is listed more than once in {category_label(category)}')
            lines.append("")

        if report.conflicting_targets:
            lines.append("CONFLICTING HARDCODED TARGETS")
            lines.append("-" * 40)
            for app in report.conflicting_targets:
                lines.append(
                    f'ERROR: App "{app}" has a hardcoded build_{app}_app target but is also in a dynamic list'
                )
                lines.append(
                    "  Either remove the hardcoded target and rely on dynamic rules, "
                    "or move the app to SPECIAL_BUILD_APPS"
                )
            lines.append("")

        if report.missing_special_targets:
            lines.append("SPECIAL APPS WITHOUT TARGETS")
            lines.append("-" * 40)
            for app in report.missing_special_targets:
                lines.append(
                    f'ERROR: App "{app}" is in SPECIAL_BUILD_APPS but has no hardcoded build_{app}_app target'
                )
                lines.append("  Either add a hardcoded target or move the app to an appropriate dynamic list")
            lines.append("")

        lines.append("SUMMARY")
        lines.append("-" * 40)
        if report.ok:
            lines.append("All apps are uniquely categorized with no conflicts")
            lines.append("No hardcoded targets conflict with dynamic lists")
            lines.append("All special build apps have corresponding targets")
        else:
            lines.append("Validation failed - please fix the issues above")
            lines.append("")
            lines.append("GUIDELINES:")
            lines.append("1. Each app must appear in ONLY ONE of these lists:")
            for name in CATEGORY_NAMES:
                lines.append(f"   - {category_label(name)}")
            lines.append("2. Apps in " + ", ".join(DYNAMIC_LABELS))
            lines.append("   use dynamic build rules and should NOT have hardcoded build_<app>_app targets")
            lines.append("3. Apps in SPECIAL_BUILD_APPS require custom build logic and MUST have")
            lines.append("   a hardcoded build_<app>_app target in the Makefile")
            if excluded_targets:
                lines.append("4. Currently excluded from conflict checks: " + ", ".join(excluded_targets))

        text = "\n".join(lines)
        self._write(text, filename)
        return text

    def generate_external_apps_report(
        self,
        report: ExternalAppsReport,
        filename: str | None = None,
    ) -> str:
        """Render the external apps validation with developer actions."""
        lines = self._header("EXTERNAL APPS VALIDATION")

        for analysis in report.analyses:
            lines.append(f"{analysis.name}:")
            lines.append(f"  composer.json: {'yes' if analysis.has_composer else 'no'}")
            lines.append(
                f"  package.json: {'yes' if analysis.has_package else 'no'}"
                f" (build script: {'yes' if analysis.has_build_script else 'no'})"
            )
            declared = category_label(analysis.declared) if analysis.declared else "NOT CONFIGURED"
            recommended = category_label(analysis.recommended) if analysis.recommended else "FIX REQUIRED"
            lines.append(f"  Current: {declared}")
            lines.append(f"  Recommended: {recommended}")
            lines.append(f"  Reasoning: {analysis.reasoning}")
            lines.append("")

        lines.append("SUMMARY")
        lines.append("-" * 40)
        if report.submodule_issues:
            names = " ".join(name for name, _ in report.submodule_issues)
            lines.append(f"Found {len(report.submodule_issues)} submodule issue(s): {names}")
        if report.submodule_warnings:
            names = " ".join(name for name, _ in report.submodule_warnings)
            lines.append(f"Submodules with local changes: {names}")
        if report.missing:
            names = " ".join(name for name, _ in report.missing)
            lines.append(f"Found {len(report.missing)} missing submodule(s): {names}")
        if report.unconfigured:
            lines.append(f"Found {len(report.unconfigured)} unconfigured app(s): {' '.join(report.unconfigured)}")
        if report.errors:
            lines.append(f"Apps with errors: {' '.join(report.errors)}")
        if report.review:
            lines.append(f"Apps that may need review: {' '.join(report.review)}")

        if report.ok:
            lines.append("All apps are properly configured")
        else:
            lines.append("")
            lines.append("DEVELOPER ACTIONS:")
            if report.submodule_issues:
                lines.append("- Fix git submodule issues:")
                lines.append("  uninitialized: git submodule update --init apps-external/APP_NAME")
                lines.append("  merge conflicts: resolve in apps-external/APP_NAME and commit")
            if report.missing:
                for name, problem in report.missing:
                    lines.append(f"- {name}: {problem}")
                lines.append("  Remove the app from its category or add it as a git submodule")
            if report.unconfigured:
                lines.append("- Add unconfigured apps to a category in the settings file:")
                for analysis in report.analyses:
                    if analysis.name in report.unconfigured and analysis.recommended:
                        lines.append(f"  {analysis.name} -> {category_label(analysis.recommended)}")
            if report.errors:
                lines.append("- These apps are missing required composer.json files: " + " ".join(report.errors))
        if report.review:
            lines.append("- Review apps with potential configuration issues:")
            for analysis in report.analyses:
                if analysis.name in report.review:
                    lines.append(
                        f"  Move {analysis.name} from {category_label(analysis.declared)}"
                        f" to {category_label(analysis.recommended)}"
                    )

        text = "\n".join(lines)
        self._write(text, filename)
        return text

    def generate_shell_config_report(
        self,
        violations: list[ShellConfigViolation],
        filename: str | None = None,
    ) -> str:
        lines = self._header("SHELL CONFIG POLICY CHECK")
        if not violations:
            lines.append("No config:system:set usage found in shell scripts")
        else:
            for violation in violations:
                lines.append(f"{violation.path}:{violation.line_number}: {violation.content}")
            lines.append("")
            lines.append("config:system:set should be avoided in favor of partial configuration:")
            lines.append("  1. Review each occurrence and determine if it's truly necessary")
            lines.append("  2. Replace with config:app:set where possible")
            lines.append("  3. Use environment variables for dynamic configuration")
        text = "\n".join(lines)
        self._write(text, filename)
        return text

    def export_results_json(self, results: Any, filename: str) -> Path:
        """Export a report (dataclass or dict) as JSON."""
        if self.output_dir is None:
            raise ValueError("No output directory configured")

        data = asdict(results) if is_dataclass(results) else results
        if is_dataclass(results) and hasattr(results, "ok"):
            data["ok"] = results.ok

        filepath = self.output_dir / filename
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        return filepath
