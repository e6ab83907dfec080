"""Tests for the alertroute CLI.

Tests all commands: validate, status, route.
Uses typer.testing.CliRunner for isolated CLI testing.
"""

from __future__ import annotations

import json

import pytest
import yaml
from typer.testing import CliRunner

from alertroute.cli import app

runner = CliRunner()


def _alert(name: str, provider: str = "noop", **spec) -> dict:
    return {
        "apiVersion": "alertroute/v1",
        "kind": "Alert",
        "metadata": {"name": name, "namespace": "prod"},
        "spec": {
            "providerRef": {"name": provider},
            "eventSources": [{"kind": "Deployment", "namespace": "*", "name": "api"}],
            **spec,
        },
    }


def _provider(name: str, type_: str) -> dict:
    return {"kind": "Provider", "metadata": {"name": name, "namespace": "prod"}, "spec": {"type": type_}}


@pytest.fixture
def manifests(tmp_path):
    alerts = tmp_path / "alerts.yaml"
    alerts.write_text(
        yaml.safe_dump_all(
            [
                _alert("api-alerts"),
                _alert("api-errors", eventSeverity="error", exclusionList=["timeout"]),
                _alert("api-logged", provider="log", summary="API rollout"),
                _alert("orphan", provider="missing"),
            ]
        )
    )
    providers = tmp_path / "providers.yaml"
    providers.write_text(yaml.safe_dump_all([_provider("noop", "noop"), _provider("log", "log")]))
    events = tmp_path / "events.jsonl"
    events.write_text(
        "\n".join(
            json.dumps(e)
            for e in [
                {"kind": "Deployment", "namespace": "prod", "name": "api", "severity": "info",
                 "message": "rollout complete"},
                {"kind": "Deployment", "namespace": "prod", "name": "api", "severity": "error",
                 "message": "connection timeout"},
                {"kind": "Deployment", "namespace": "prod", "name": "web", "severity": "error",
                 "message": "crash"},
            ]
        )
    )
    return {"alerts": alerts, "providers": providers, "events": events, "dir": tmp_path}


# =========================================================================
# App structure
# =========================================================================


class TestAppStructure:
    def test_app_has_all_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("validate", "status", "route"):
            assert command in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "Usage" in result.output


# =========================================================================
# validate
# =========================================================================


class TestValidate:
    def test_all_valid(self, manifests):
        result = runner.invoke(app, ["validate", str(manifests["alerts"])])
        assert result.exit_code == 0
        assert "ok       prod/api-alerts" in result.output
        assert "ok       prod/orphan" in result.output

    def test_rejected_rule(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            yaml.safe_dump_all(
                [_alert("good"), _alert("bad", eventSeverity="fatal", exclusionList=["([unclosed"])]
            )
        )
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "REJECTED prod/bad" in result.output
        assert "is invalid" in result.output
        assert "1 of 2 alerts rejected." in result.output

    def test_no_alerts(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text(yaml.safe_dump(_provider("noop", "noop")))
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Error: no Alert resources found" in result.output

    def test_malformed_manifest(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("kind: Alert\nmetadata: {}\n")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "metadata.name is required" in result.output


# =========================================================================
# status
# =========================================================================


class TestStatus:
    def test_ready_table(self, manifests):
        result = runner.invoke(
            app,
            ["status", "-a", str(manifests["alerts"]), "-p", str(manifests["providers"])],
        )
        assert result.exit_code == 0
        lines = {line.split()[0]: line for line in result.output.splitlines() if line.startswith("prod/")}
        assert lines["prod/api-alerts"].split()[1] == "True"
        assert lines["prod/orphan"].split()[1] == "False"
        assert "ProviderNotFound" in lines["prod/orphan"]

    def test_rejections_logged_before_exit(self, manifests):
        result = runner.invoke(
            app,
            ["status", "-a", str(manifests["alerts"]), "-p", str(manifests["providers"])],
        )
        assert result.exit_code == 0
        rejected = [
            json.loads(line) for line in result.output.splitlines()
            if line.startswith("{") and "rule.rejected" in line
        ]
        assert [r["rule"] for r in rejected] == ["prod/orphan"]
        assert rejected[0]["reason"] == "ProviderNotFound"

    def test_bad_provider_type(self, manifests, tmp_path):
        providers = tmp_path / "bad-providers.yaml"
        providers.write_text(yaml.safe_dump(_provider("noop", "carrier-pigeon")))
        result = runner.invoke(app, ["status", "-a", str(manifests["alerts"]), "-p", str(providers)])
        assert result.exit_code == 1
        assert "unknown type 'carrier-pigeon'" in result.output

    def test_bad_config(self, manifests, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("max_attempts: 0\n")
        result = runner.invoke(
            app, ["status", "-a", str(manifests["alerts"]), "-c", str(config)]
        )
        assert result.exit_code == 1
        assert "max_attempts must be >= 1" in result.output


# =========================================================================
# route
# =========================================================================


class TestRoute:
    def _route(self, manifests, *extra: str):
        return runner.invoke(
            app,
            [
                "route",
                "-a", str(manifests["alerts"]),
                "-p", str(manifests["providers"]),
                "-e", str(manifests["events"]),
                *extra,
            ],
        )

    def test_outcomes(self, manifests):
        result = self._route(manifests)
        assert result.exit_code == 0, result.output
        out = result.output
        assert "Deployment/prod/api -> prod/api-alerts: delivered (attempts=1)" in out
        assert "Deployment/prod/api -> prod/api-errors: severity_dropped" in out
        assert "Deployment/prod/api -> prod/api-errors: excluded" in out
        assert "Deployment/prod/api -> prod/orphan: invalid_rule" in out
        assert "Deployment/prod/web" not in out

    def test_show_unmatched(self, manifests):
        result = self._route(manifests, "--show-unmatched")
        assert "Deployment/prod/web -> prod/api-alerts: not_matched" in result.output

    def test_json_output(self, manifests):
        result = self._route(manifests, "--json")
        assert result.exit_code == 0
        parsed = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        records = [r for r in parsed if "decision" in r]
        delivered = [r for r in records if r["decision"] == "delivered"]
        assert {r["rule"] for r in delivered} == {"prod/api-alerts", "prod/api-logged"}
        assert all(r["attempts"] >= 1 for r in delivered)

    def test_status_printed_after_outcomes(self, manifests):
        result = self._route(manifests)
        assert result.output.index("->") < result.output.index("Ready")
