"""
Remote write encoding and the distributor push client.

Samples are pushed in the Prometheus remote write format: a protobuf
`WriteRequest` message compressed with snappy block compression.

The message types are registered with the protobuf runtime at import time from
a descriptor equivalent to this schema:

    package prometheus;

    message WriteRequest { repeated TimeSeries timeseries = 1; }
    message TimeSeries   { repeated Label labels = 1; repeated Sample samples = 2; }
    message Label        { string name = 1; string value = 2; }
    message Sample       { double value = 1; int64 timestamp = 2; }
"""

import logging
from typing import Iterable

import httpx
import snappy
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

from .exceptions import CortexDecodeError
from .models import Label, Sample, TimeSeries
from .transport import BaseAPIClient

logger = logging.getLogger(__name__)

PUSH_PATH = "/api/prom/push"
REMOTE_WRITE_VERSION = "0.1.0"

PUSH_HEADERS = {
    "Content-Encoding": "snappy",
    "Content-Type": "application/x-protobuf",
    "X-Prometheus-Remote-Write-Version": REMOTE_WRITE_VERSION,
}

_Field = descriptor_pb2.FieldDescriptorProto


def _build_schema() -> descriptor_pb2.FileDescriptorProto:
    schema = descriptor_pb2.FileDescriptorProto(
        name="cortex_e2e/prompb/remote.proto",
        package="prometheus",
        syntax="proto3",
    )

    label = schema.message_type.add(name="Label")
    label.field.add(name="name", number=1, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)
    label.field.add(name="value", number=2, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)

    sample = schema.message_type.add(name="Sample")
    sample.field.add(name="value", number=1, type=_Field.TYPE_DOUBLE, label=_Field.LABEL_OPTIONAL)
    sample.field.add(name="timestamp", number=2, type=_Field.TYPE_INT64, label=_Field.LABEL_OPTIONAL)

    series = schema.message_type.add(name="TimeSeries")
    series.field.add(
        name="labels", number=1, type=_Field.TYPE_MESSAGE,
        label=_Field.LABEL_REPEATED, type_name=".prometheus.Label",
    )
    series.field.add(
        name="samples", number=2, type=_Field.TYPE_MESSAGE,
        label=_Field.LABEL_REPEATED, type_name=".prometheus.Sample",
    )

    request = schema.message_type.add(name="WriteRequest")
    request.field.add(
        name="timeseries", number=1, type=_Field.TYPE_MESSAGE,
        label=_Field.LABEL_REPEATED, type_name=".prometheus.TimeSeries",
    )

    return schema


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_schema().SerializeToString())

WriteRequestMessage = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName("prometheus.WriteRequest")
)


def encode_write_request(series: Iterable[TimeSeries]) -> bytes:
    """
    Encode a batch of time series as a snappy-compressed WriteRequest.

    Args:
        series: Time series to encode, in order

    Returns:
        Compressed request body
    """
    request = WriteRequestMessage()
    for ts in series:
        pb_series = request.timeseries.add()
        for label in ts.labels:
            pb_series.labels.add(name=label.name, value=label.value)
        for sample in ts.samples:
            pb_series.samples.add(value=sample.value, timestamp=sample.timestamp_ms)

    return snappy.compress(request.SerializeToString())


def decode_write_request(body: bytes) -> list[TimeSeries]:
    """
    Decode a snappy-compressed WriteRequest body.

    Raises:
        CortexDecodeError: If the body is not valid snappy or protobuf
    """
    try:
        request = WriteRequestMessage.FromString(snappy.decompress(body))
    except (snappy.UncompressError, DecodeError) as e:
        raise CortexDecodeError(
            f"Invalid remote write body: {e}",
            operation="push",
        ) from e

    return [
        TimeSeries(
            labels=tuple(Label(label.name, label.value) for label in pb_series.labels),
            samples=tuple(Sample(sample.value, sample.timestamp) for sample in pb_series.samples),
        )
        for pb_series in request.timeseries
    ]


class DistributorClient(BaseAPIClient):
    """
    Client for the distributor's remote write endpoint.

    Example:
        >>> distributor = DistributorClient(http_client, "http://distributor:8080")
        >>> response = distributor.push([series])
        >>> assert response.status_code == 200
    """

    def push(self, series: Iterable[TimeSeries]) -> httpx.Response:
        """
        Push time series to the distributor.

        The response is returned as is; its status code is not interpreted.

        Args:
            series: Time series to push; batching is up to the caller

        Returns:
            The distributor's response, already read and closed

        Raises:
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        series = list(series)
        body = encode_write_request(series)
        logger.debug(f"Pushing {len(series)} series ({len(body)} bytes compressed)")

        return self._request(
            "POST",
            PUSH_PATH,
            operation="push",
            content=body,
            headers=PUSH_HEADERS,
        )
