"""
Cortex E2E client.

A synchronous client for driving a multi-tenant Cortex cluster from tests:
remote write pushes, instant queries and label discovery, ruler rule groups,
and alertmanager configuration.
"""

from .client import CortexClient
from .config import ClientConfig, load_config
from .exceptions import (
    AlertmanagerNotConfiguredError,
    ConfigValidationError,
    CortexAPIError,
    CortexConnectionError,
    CortexDecodeError,
    CortexQueryError,
    CortexTimeoutError,
    CortexTransportError,
    UnexpectedStatusError,
)
from .models import (
    AlertmanagerConfig,
    AlertmanagerUserConfig,
    ConfigOutcome,
    Label,
    Matrix,
    QueryResult,
    Rule,
    RuleGroup,
    Sample,
    SampleStream,
    Scalar,
    String,
    TimeSeries,
    Vector,
    VectorSample,
)

__all__ = [
    "AlertmanagerConfig",
    "AlertmanagerNotConfiguredError",
    "AlertmanagerUserConfig",
    "ClientConfig",
    "ConfigOutcome",
    "ConfigValidationError",
    "CortexAPIError",
    "CortexClient",
    "CortexConnectionError",
    "CortexDecodeError",
    "CortexQueryError",
    "CortexTimeoutError",
    "CortexTransportError",
    "Label",
    "Matrix",
    "QueryResult",
    "Rule",
    "RuleGroup",
    "Sample",
    "SampleStream",
    "Scalar",
    "String",
    "TimeSeries",
    "UnexpectedStatusError",
    "Vector",
    "VectorSample",
    "load_config",
]
