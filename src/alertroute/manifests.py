"""Load declared resources (Alert, Provider) and event streams from files.

Manifests are YAML (multi-document) or JSON. Events are JSONL, a JSON
list, or a YAML list. Structural problems raise ManifestError; semantic
problems in an Alert spec are left for admission to report.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from alertroute.conditions import Condition
from alertroute.providers import ProviderSpec
from alertroute.types import (
    DEFAULT_NAMESPACE,
    AlertRule,
    AlertSpec,
    AlertStatus,
    EventSourceSelector,
    IncomingEvent,
    ProviderRef,
    Severity,
)


_TRUTHY = {"1", "true", "on", "yes"}


class ManifestError(ValueError):
    """A manifest file could not be read or has the wrong shape."""


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _list(value: Any, where: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"{where}: expected a list, got {type(value).__name__}")
    return value


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _metadata(doc: dict[str, Any], where: str) -> tuple[str, str, int]:
    meta = _mapping(doc.get("metadata"), f"{where}.metadata")
    name = str(meta.get("name") or "").strip()
    if not name:
        raise ManifestError(f"{where}: metadata.name is required")
    namespace = str(meta.get("namespace") or DEFAULT_NAMESPACE)
    try:
        generation = int(meta.get("generation", 1))
    except (TypeError, ValueError) as err:
        raise ManifestError(f"{where}: metadata.generation must be an integer") from err
    return name, namespace, generation


def alert_from_dict(doc: dict[str, Any], where: str = "Alert") -> AlertRule:
    name, namespace, generation = _metadata(doc, where)
    where = f"Alert {namespace}/{name}"
    spec = _mapping(doc.get("spec"), f"{where}.spec")
    provider_ref = _mapping(spec.get("providerRef"), f"{where}.spec.providerRef")

    sources = [
        EventSourceSelector.from_dict(
            _mapping(s, f"{where}.spec.eventSources[{i}]"), default_namespace=namespace
        )
        for i, s in enumerate(_list(spec.get("eventSources"), f"{where}.spec.eventSources"))
    ]

    status_doc = _mapping(doc.get("status"), f"{where}.status")
    try:
        observed = int(status_doc.get("observedGeneration", -1))
    except (TypeError, ValueError) as err:
        raise ManifestError(f"{where}: status.observedGeneration must be an integer") from err
    status = AlertStatus(
        observed_generation=observed,
        conditions=[
            Condition.from_dict(_mapping(c, f"{where}.status.conditions"))
            for c in _list(status_doc.get("conditions"), f"{where}.status.conditions")
        ],
    )

    return AlertRule(
        name=name,
        namespace=namespace,
        generation=generation,
        spec=AlertSpec(
            provider_ref=ProviderRef(str(provider_ref.get("name") or "")),
            event_sources=sources,
            event_severity=str(spec.get("eventSeverity") or Severity.INFO.value),
            exclusion_list=[
                str(p) for p in _list(spec.get("exclusionList"), f"{where}.spec.exclusionList")
            ],
            summary=str(spec.get("summary") or ""),
            suspend=_flag(spec.get("suspend", False)),
        ),
        status=status,
    )


def provider_from_dict(doc: dict[str, Any], where: str = "Provider") -> ProviderSpec:
    name, namespace, _ = _metadata(doc, where)
    spec = _mapping(doc.get("spec"), f"Provider {namespace}/{name}.spec")
    try:
        timeout = float(spec.get("timeout", 10.0))
    except (TypeError, ValueError) as err:
        raise ManifestError(f"Provider {namespace}/{name}: spec.timeout must be a number") from err
    return ProviderSpec(
        name=name,
        namespace=namespace,
        type=str(spec.get("type") or "generic"),
        address=str(spec.get("address") or ""),
        timeout=timeout,
        headers={str(k): str(v) for k, v in _mapping(spec.get("headers"), "headers").items()},
    )


def _read_documents(path: Path) -> list[Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as err:
        raise ManifestError(f"cannot read {path}: {err}") from err
    try:
        if path.suffix == ".json":
            loaded = json.loads(text)
            return loaded if isinstance(loaded, list) else [loaded]
        docs: list[Any] = []
        for doc in yaml.safe_load_all(text):
            if isinstance(doc, list):
                docs.extend(doc)
            elif doc is not None:
                docs.append(doc)
        return docs
    except (json.JSONDecodeError, yaml.YAMLError) as err:
        raise ManifestError(f"cannot parse {path}: {err}") from err


def load_resources(path: Path) -> tuple[list[AlertRule], list[ProviderSpec]]:
    """Read every Alert and Provider document in a file. Other kinds are skipped."""
    alerts: list[AlertRule] = []
    providers: list[ProviderSpec] = []
    for i, doc in enumerate(_read_documents(path)):
        where = f"{path}[{i}]"
        doc = _mapping(doc, where)
        kind = doc.get("kind")
        if kind == "Alert":
            alerts.append(alert_from_dict(doc, where))
        elif kind == "Provider":
            providers.append(provider_from_dict(doc, where))
    return alerts, providers


def iter_events(path: Path) -> Iterator[IncomingEvent]:
    """Yield events from JSONL (one object per line), JSON or YAML lists."""
    if path.suffix == ".jsonl":
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as err:
            raise ManifestError(f"cannot read {path}: {err}") from err
        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError as err:
                raise ManifestError(f"{path}:{lineno}: {err}") from err
            yield IncomingEvent.from_dict(_mapping(raw, f"{path}:{lineno}"))
        return

    for i, raw in enumerate(_read_documents(path)):
        yield IncomingEvent.from_dict(_mapping(raw, f"{path}[{i}]"))
