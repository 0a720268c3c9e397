"""
Data models for the Cortex E2E client.

This module defines the value objects exchanged with the cluster: time series
pushed to the distributor, rule groups stored in the ruler, alertmanager
configurations, and the typed results of instant queries.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

import yaml


# =========================================================================
# Write path
# =========================================================================

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class Label:
    """A single label name/value pair."""

    name: str
    value: str


@dataclass(frozen=True)
class Sample:
    """
    A single sample of a time series.

    Attributes:
        value: Sample value
        timestamp_ms: Sample timestamp in milliseconds since the Unix epoch
    """

    value: float
    timestamp_ms: int

    def __post_init__(self):
        if not INT64_MIN <= self.timestamp_ms <= INT64_MAX:
            raise ValueError(
                f"Invalid timestamp_ms: {self.timestamp_ms}. Must fit in a signed 64-bit integer"
            )


@dataclass(frozen=True)
class TimeSeries:
    """
    A labeled time series with its samples, as pushed to the distributor.

    Label names must be unique within one series.
    """

    labels: tuple[Label, ...]
    samples: tuple[Sample, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "samples", tuple(self.samples))

        names = [label.name for label in self.labels]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate label names in time series: {duplicates}")

    @classmethod
    def from_dict(
        cls,
        labels: dict[str, str],
        samples: list[tuple[float, int]],
    ) -> "TimeSeries":
        """
        Create a time series from a label mapping and (value, timestamp_ms) pairs.

        Example:
            >>> TimeSeries.from_dict({"__name__": "series_1"}, [(1.0, 1700000000000)])
        """
        return cls(
            labels=tuple(Label(name, value) for name, value in labels.items()),
            samples=tuple(Sample(value, timestamp_ms) for value, timestamp_ms in samples),
        )

    @property
    def label_dict(self) -> dict[str, str]:
        """Labels as a plain mapping."""
        return {label.name: label.value for label in self.labels}


# =========================================================================
# Ruler
# =========================================================================

RULE_KEYS = frozenset({"record", "alert", "expr", "for", "labels", "annotations"})
RULE_GROUP_KEYS = frozenset({"name", "interval", "rules"})


@dataclass
class Rule:
    """
    A recording or alerting rule.

    Exactly one of `record` and `alert` is expected to be set.

    Attributes:
        expr: PromQL expression evaluated by the rule
        record: Name of the series written by a recording rule
        alert: Name of the alert fired by an alerting rule
        for_: Pending duration of an alerting rule (e.g. "5m")
        labels: Labels added to the recorded series or the alert
        annotations: Annotations attached to the alert
        extra: Rule file keys not modelled above, kept as read
    """

    expr: str
    record: Optional[str] = None
    alert: Optional[str] = None
    for_: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the rule file representation."""
        data: dict[str, Any] = {}
        if self.record is not None:
            data["record"] = self.record
        if self.alert is not None:
            data["alert"] = self.alert
        data["expr"] = self.expr
        if self.for_ is not None:
            data["for"] = self.for_
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        data.update((k, v) for k, v in self.extra.items() if k not in data)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        """Create a Rule from its rule file representation."""
        return cls(
            expr=str(data.get("expr", "")),
            record=data.get("record"),
            alert=data.get("alert"),
            for_=data.get("for"),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            extra={k: v for k, v in data.items() if k not in RULE_KEYS},
        )


@dataclass
class RuleGroup:
    """
    A named set of rules evaluated together on a fixed interval.

    Attributes:
        name: Group name, unique within a namespace
        rules: Rules in evaluation order
        interval: Evaluation interval (e.g. "1m"); the ruler default applies when unset
        extra: Rule group keys not modelled above (e.g. "limit"), kept as read
    """

    name: str
    rules: list[Rule] = field(default_factory=list)
    interval: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the rule file representation."""
        data: dict[str, Any] = {"name": self.name}
        if self.interval is not None:
            data["interval"] = self.interval
        data["rules"] = [rule.to_dict() for rule in self.rules]
        data.update((k, v) for k, v in self.extra.items() if k not in data)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleGroup":
        """Create a RuleGroup from its rule file representation."""
        return cls(
            name=str(data.get("name", "")),
            interval=data.get("interval"),
            rules=[Rule.from_dict(rule) for rule in data.get("rules") or []],
            extra={k: v for k, v in data.items() if k not in RULE_GROUP_KEYS},
        )

    def to_yaml(self) -> str:
        """Serialize the group as a YAML document."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str) -> "RuleGroup":
        """Parse a group from a YAML document."""
        data = yaml.safe_load(text)
        if not isinstance(data, dict):
            raise ValueError("Rule group document must be a mapping")
        return cls.from_dict(data)

    def validate(self) -> list[str]:
        """
        Check the group the way the ruler checks uploaded rule files.

        Returns:
            List of problems (empty if the group is valid)
        """
        problems = []
        if not self.name:
            problems.append("rule group name must not be empty")
        for i, rule in enumerate(self.rules):
            if rule.record and rule.alert:
                problems.append(f"rule {i}: only one of 'record' and 'alert' must be set")
            elif not rule.record and not rule.alert:
                problems.append(f"rule {i}: one of 'record' or 'alert' must be set")
            if not rule.expr:
                problems.append(f"rule {i}: field 'expr' must be set")
            if rule.record and rule.for_ is not None:
                problems.append(f"rule {i}: invalid field 'for' in recording rule")
            if rule.record and rule.annotations:
                problems.append(f"rule {i}: invalid field 'annotations' in recording rule")
        return problems


# =========================================================================
# Alertmanager
# =========================================================================

class ConfigOutcome(Enum):
    """Result of an alertmanager configuration write."""

    OK = "ok"
    NOT_FOUND = "not_found"


@dataclass
class AlertmanagerUserConfig:
    """
    A tenant's alertmanager configuration as stored by Cortex.

    Attributes:
        alertmanager_config: Raw alertmanager configuration YAML
        template_files: Mapping of template file name to template content
    """

    alertmanager_config: str
    template_files: dict[str, str] = field(default_factory=dict)

    def to_yaml(self) -> str:
        """Serialize in the format accepted by the alertmanager config API."""
        return yaml.safe_dump(
            {
                "template_files": dict(self.template_files),
                "alertmanager_config": self.alertmanager_config,
            },
            sort_keys=False,
        )

    @classmethod
    def from_yaml(cls, text: str) -> "AlertmanagerUserConfig":
        """Parse the format accepted by the alertmanager config API."""
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Alertmanager user config must be a mapping")
        return cls(
            alertmanager_config=data.get("alertmanager_config") or "",
            template_files=dict(data.get("template_files") or {}),
        )


@dataclass
class AlertmanagerConfig:
    """
    A parsed alertmanager configuration.

    Attributes:
        route: Root routing tree
        receivers: Notification receivers
        inhibit_rules: Inhibition rules
        templates: Template file globs
        global_config: The `global` section
        raw: The complete parsed document
    """

    route: dict[str, Any] = field(default_factory=dict)
    receivers: list[dict[str, Any]] = field(default_factory=list)
    inhibit_rules: list[dict[str, Any]] = field(default_factory=list)
    templates: list[str] = field(default_factory=list)
    global_config: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, text: str) -> "AlertmanagerConfig":
        """
        Parse an alertmanager configuration document.

        Raises:
            ValueError: If the document is not a mapping
            yaml.YAMLError: If the YAML is invalid
        """
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Alertmanager configuration must be a mapping")
        return cls(
            route=dict(data.get("route") or {}),
            receivers=list(data.get("receivers") or []),
            inhibit_rules=list(data.get("inhibit_rules") or []),
            templates=list(data.get("templates") or []),
            global_config=dict(data.get("global") or {}),
            raw=data,
        )

    def to_yaml(self) -> str:
        """Serialize the configuration back to YAML."""
        return yaml.safe_dump(self.raw, sort_keys=False)


# =========================================================================
# Query results
# =========================================================================

@dataclass(frozen=True)
class Scalar:
    """A single numeric value."""

    timestamp: float
    value: float

    result_type = "scalar"


@dataclass(frozen=True)
class String:
    """A single string value."""

    timestamp: float
    value: str

    result_type = "string"


@dataclass(frozen=True)
class VectorSample:
    """One element of an instant vector."""

    metric: dict[str, str]
    timestamp: float
    value: float


@dataclass(frozen=True)
class Vector:
    """An instant vector: one sample per series."""

    samples: tuple[VectorSample, ...] = ()

    result_type = "vector"

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class SampleStream:
    """One series of a range vector."""

    metric: dict[str, str]
    values: tuple[tuple[float, float], ...] = ()


@dataclass(frozen=True)
class Matrix:
    """A range vector: a list of samples per series."""

    streams: tuple[SampleStream, ...] = ()

    result_type = "matrix"

    def __len__(self) -> int:
        return len(self.streams)


QueryResult = Union[Scalar, Vector, Matrix, String]


def _sample_value(raw: Any) -> float:
    # Values are sent as strings so that NaN and +/-Inf survive JSON.
    return float(raw)


def decode_query_result(data: dict[str, Any]) -> QueryResult:
    """
    Decode the `data` member of a successful query response.

    Args:
        data: Mapping with `resultType` and `result`

    Returns:
        The QueryResult variant matching `resultType`

    Raises:
        ValueError: If the result type is unknown or the result is malformed
    """
    result_type = data.get("resultType")
    result = data.get("result")

    try:
        if result_type == Scalar.result_type:
            return Scalar(timestamp=float(result[0]), value=_sample_value(result[1]))
        if result_type == String.result_type:
            return String(timestamp=float(result[0]), value=str(result[1]))
        if result_type == Vector.result_type:
            return Vector(samples=tuple(
                VectorSample(
                    metric=dict(item.get("metric") or {}),
                    timestamp=float(item["value"][0]),
                    value=_sample_value(item["value"][1]),
                )
                for item in result or []
            ))
        if result_type == Matrix.result_type:
            return Matrix(streams=tuple(
                SampleStream(
                    metric=dict(item.get("metric") or {}),
                    values=tuple(
                        (float(ts), _sample_value(value))
                        for ts, value in item.get("values") or []
                    ),
                )
                for item in result or []
            ))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed {result_type} result: {e}") from e

    raise ValueError(f"Unknown result type: {result_type!r}")
