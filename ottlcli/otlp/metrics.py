"""Pydantic models for OTLP metric data (``MetricsData``)."""

from typing import ClassVar, List, Optional, Union

from pydantic import Field

from ottlcli.otlp.common import (
    Double,
    InstrumentationScope,
    Int64,
    KeyValue,
    OTLPModel,
    Resource,
    SpanId,
    TraceId,
)
from ottlcli.otlp.enums import AggregationTemporality, MetricType, enum_field

AggregationTemporalityField = enum_field(AggregationTemporality)


class Exemplar(OTLPModel):
    _oneof: ClassVar[frozenset] = frozenset({"as_double", "as_int"})

    filtered_attributes: List[KeyValue] = Field(default_factory=list)
    time_unix_nano: Int64 = 0
    as_double: Optional[Double] = None
    as_int: Optional[Int64] = None
    span_id: SpanId = ""
    trace_id: TraceId = ""


class NumberDataPoint(OTLPModel):
    """Data point of a gauge or a sum; the value is either a double or an int."""

    _oneof: ClassVar[frozenset] = frozenset({"as_double", "as_int"})

    attributes: List[KeyValue] = Field(default_factory=list)
    start_time_unix_nano: Int64 = 0
    time_unix_nano: Int64 = 0
    as_double: Optional[Double] = None
    as_int: Optional[Int64] = None
    exemplars: List[Exemplar] = Field(default_factory=list)
    flags: int = 0


class HistogramDataPoint(OTLPModel):
    _oneof: ClassVar[frozenset] = frozenset({"sum", "min", "max"})

    attributes: List[KeyValue] = Field(default_factory=list)
    start_time_unix_nano: Int64 = 0
    time_unix_nano: Int64 = 0
    count: Int64 = 0
    sum: Optional[Double] = None
    bucket_counts: List[Int64] = Field(default_factory=list)
    explicit_bounds: List[Double] = Field(default_factory=list)
    exemplars: List[Exemplar] = Field(default_factory=list)
    flags: int = 0
    min: Optional[Double] = None
    max: Optional[Double] = None


class Buckets(OTLPModel):
    offset: int = 0
    bucket_counts: List[Int64] = Field(default_factory=list)


class ExponentialHistogramDataPoint(OTLPModel):
    _oneof: ClassVar[frozenset] = frozenset({"sum", "min", "max"})

    attributes: List[KeyValue] = Field(default_factory=list)
    start_time_unix_nano: Int64 = 0
    time_unix_nano: Int64 = 0
    count: Int64 = 0
    sum: Optional[Double] = None
    scale: int = 0
    zero_count: Int64 = 0
    positive: Buckets = Field(default_factory=Buckets)
    negative: Buckets = Field(default_factory=Buckets)
    flags: int = 0
    exemplars: List[Exemplar] = Field(default_factory=list)
    min: Optional[Double] = None
    max: Optional[Double] = None
    zero_threshold: Double = 0.0


class ValueAtQuantile(OTLPModel):
    quantile: Double = 0.0
    value: Double = 0.0


class SummaryDataPoint(OTLPModel):
    attributes: List[KeyValue] = Field(default_factory=list)
    start_time_unix_nano: Int64 = 0
    time_unix_nano: Int64 = 0
    count: Int64 = 0
    sum: Double = 0.0
    quantile_values: List[ValueAtQuantile] = Field(default_factory=list)
    flags: int = 0


class Gauge(OTLPModel):
    data_points: List[NumberDataPoint] = Field(default_factory=list)


class Sum(OTLPModel):
    data_points: List[NumberDataPoint] = Field(default_factory=list)
    aggregation_temporality: AggregationTemporalityField = 0
    is_monotonic: bool = False


class Histogram(OTLPModel):
    data_points: List[HistogramDataPoint] = Field(default_factory=list)
    aggregation_temporality: AggregationTemporalityField = 0


class ExponentialHistogram(OTLPModel):
    data_points: List[ExponentialHistogramDataPoint] = Field(default_factory=list)
    aggregation_temporality: AggregationTemporalityField = 0


class Summary(OTLPModel):
    data_points: List[SummaryDataPoint] = Field(default_factory=list)


MetricData = Union[Gauge, Sum, Histogram, ExponentialHistogram, Summary]

DataPoint = Union[
    NumberDataPoint,
    HistogramDataPoint,
    ExponentialHistogramDataPoint,
    SummaryDataPoint,
]

# Metric data fields in the order the metric type is resolved
_DATA_FIELDS = (
    (MetricType.GAUGE, "gauge"),
    (MetricType.SUM, "sum"),
    (MetricType.HISTOGRAM, "histogram"),
    (MetricType.EXPONENTIAL_HISTOGRAM, "exponential_histogram"),
    (MetricType.SUMMARY, "summary"),
)


class Metric(OTLPModel):
    """A metric; at most one of the data fields is populated."""

    _oneof: ClassVar[frozenset] = frozenset(
        {"gauge", "sum", "histogram", "exponential_histogram", "summary"}
    )

    name: str = ""
    description: str = ""
    unit: str = ""
    gauge: Optional[Gauge] = None
    sum: Optional[Sum] = None
    histogram: Optional[Histogram] = None
    exponential_histogram: Optional[ExponentialHistogram] = None
    summary: Optional[Summary] = None
    metadata: List[KeyValue] = Field(default_factory=list)

    @property
    def type(self) -> MetricType:
        for metric_type, field_name in _DATA_FIELDS:
            if getattr(self, field_name) is not None:
                return metric_type
        return MetricType.NONE

    @property
    def data(self) -> Optional[MetricData]:
        """The populated data field, or None for a metric without data."""
        for _, field_name in _DATA_FIELDS:
            value = getattr(self, field_name)
            if value is not None:
                return value
        return None


class ScopeMetrics(OTLPModel):
    scope: InstrumentationScope = Field(default_factory=InstrumentationScope)
    metrics: List[Metric] = Field(default_factory=list)
    schema_url: str = ""


class ResourceMetrics(OTLPModel):
    resource: Resource = Field(default_factory=Resource)
    scope_metrics: List[ScopeMetrics] = Field(default_factory=list)
    schema_url: str = ""


class MetricsData(OTLPModel):
    resource_metrics: List[ResourceMetrics] = Field(default_factory=list)
