"""
Transform contexts: the per-record bundle a compiled statement runs against,
and the table of paths each context exposes.

A path such as ``resource.attributes["host"]`` is resolved at compile time to
a :class:`PathGetSetter`, which reads and writes plain Python values (str,
int, float, bool, bytes, list, dict, None) on the underlying OTLP models.
"""

from dataclasses import dataclass
from difflib import get_close_matches
from typing import Any, Callable, ClassVar, Dict, List, Optional, Union

from ottlcli.context import ContextType
from ottlcli.errors import CompileError, ExecutionError
from ottlcli.otlp.common import (
    AnyValue,
    InstrumentationScope,
    Resource,
    attributes_to_dict,
    dict_to_attributes,
)
from ottlcli.otlp.logs import LogRecord, ResourceLogs, ScopeLogs
from ottlcli.otlp.metrics import (
    DataPoint,
    ExponentialHistogram,
    ExponentialHistogramDataPoint,
    Histogram,
    HistogramDataPoint,
    Metric,
    NumberDataPoint,
    ResourceMetrics,
    ScopeMetrics,
    Sum,
    SummaryDataPoint,
)
from ottlcli.otlp.traces import ResourceSpans, ScopeSpans, Span


class TransformContext:
    """Base class of the per-record contexts handed to a compiled statement."""

    context_type: ClassVar[ContextType] = ContextType.UNKNOWN

    def __init__(self, scope, resource, scope_group, resource_group):
        self.scope: InstrumentationScope = scope
        self.resource: Resource = resource
        self.scope_group = scope_group
        self.resource_group = resource_group
        # scratch space for a single execution, addressed as cache["key"]
        self.cache: Dict[str, Any] = {}


class SpanContext(TransformContext):
    context_type = ContextType.SPAN

    def __init__(
        self,
        span: Span,
        scope: InstrumentationScope,
        resource: Resource,
        scope_spans: ScopeSpans,
        resource_spans: ResourceSpans,
    ):
        super().__init__(scope, resource, scope_spans, resource_spans)
        self.span = span


class LogContext(TransformContext):
    context_type = ContextType.LOG

    def __init__(
        self,
        log_record: LogRecord,
        scope: InstrumentationScope,
        resource: Resource,
        scope_logs: ScopeLogs,
        resource_logs: ResourceLogs,
    ):
        super().__init__(scope, resource, scope_logs, resource_logs)
        self.log_record = log_record


class MetricContext(TransformContext):
    context_type = ContextType.METRIC

    def __init__(
        self,
        metric: Metric,
        scope: InstrumentationScope,
        resource: Resource,
        scope_metrics: ScopeMetrics,
        resource_metrics: ResourceMetrics,
    ):
        super().__init__(scope, resource, scope_metrics, resource_metrics)
        self.metric = metric


class DataPointContext(TransformContext):
    context_type = ContextType.DATAPOINT

    def __init__(
        self,
        datapoint: DataPoint,
        metric: Metric,
        scope: InstrumentationScope,
        resource: Resource,
        scope_metrics: ScopeMetrics,
        resource_metrics: ResourceMetrics,
    ):
        super().__init__(scope, resource, scope_metrics, resource_metrics)
        self.datapoint = datapoint
        self.metric = metric


# Field accessors


@dataclass(frozen=True)
class FieldAccessor:
    """Reads and optionally writes one field of a model object."""

    get: Callable[[Any], Any]
    set: Optional[Callable[[Any, Any], None]] = None


def _type_error(name: str, expected: str, value: Any) -> ExecutionError:
    return ExecutionError(
        f"cannot set {name}: expected {expected} but got {type(value).__name__}"
    )


def _str_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if not isinstance(value, str):
            raise _type_error(attr, "string", value)
        setattr(obj, attr, value)

    return FieldAccessor(lambda obj: getattr(obj, attr), setter)


def _int_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise _type_error(attr, "int", value)
        setattr(obj, attr, value)

    return FieldAccessor(lambda obj: getattr(obj, attr), setter)


def _float_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _type_error(attr, "double", value)
        setattr(obj, attr, float(value))

    return FieldAccessor(lambda obj: getattr(obj, attr), setter)


def _attributes_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if not isinstance(value, dict):
            raise _type_error(attr, "map", value)
        setattr(obj, attr, dict_to_attributes(value))

    return FieldAccessor(lambda obj: attributes_to_dict(getattr(obj, attr)), setter)


def _any_value_field(attr: str) -> FieldAccessor:
    return FieldAccessor(
        lambda obj: getattr(obj, attr).to_python(),
        lambda obj, value: setattr(obj, attr, AnyValue.from_python(value)),
    )


def _id_fields(attr: str, size: int) -> Dict[str, FieldAccessor]:
    """``<attr>`` as raw bytes and ``<attr>.string`` as a hex string."""

    def get_bytes(obj):
        hex_id = getattr(obj, attr)
        return bytes.fromhex(hex_id) if hex_id else None

    def set_bytes(obj, value):
        if not isinstance(value, bytes) or len(value) != size:
            raise ExecutionError(f"cannot set {attr}: expected {size} bytes")
        setattr(obj, attr, value.hex())

    def set_string(obj, value):
        if not isinstance(value, str):
            raise _type_error(f"{attr}.string", "string", value)
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raise ExecutionError(f"cannot set {attr}.string: invalid hex id {value!r}")
        if raw and len(raw) != size:
            raise ExecutionError(f"cannot set {attr}.string: expected {size} bytes")
        setattr(obj, attr, value.lower())

    return {
        attr: FieldAccessor(get_bytes, set_bytes),
        f"{attr}.string": FieldAccessor(lambda obj: getattr(obj, attr), set_string),
    }


def _read_only(get: Callable[[Any], Any]) -> FieldAccessor:
    return FieldAccessor(get)


_RESOURCE_FIELDS: Dict[str, FieldAccessor] = {
    "attributes": _attributes_field("attributes"),
    "dropped_attributes_count": _int_field("dropped_attributes_count"),
}

_SCOPE_FIELDS: Dict[str, FieldAccessor] = {
    "name": _str_field("name"),
    "version": _str_field("version"),
    "attributes": _attributes_field("attributes"),
    "dropped_attributes_count": _int_field("dropped_attributes_count"),
}

_SCHEMA_URL = _str_field("schema_url")


def _status_field(inner: FieldAccessor) -> FieldAccessor:
    return FieldAccessor(
        lambda span: inner.get(span.status),
        lambda span, value: inner.set(span.status, value),
    )


_SPAN_FIELDS: Dict[str, FieldAccessor] = {
    **_id_fields("trace_id", 16),
    **_id_fields("span_id", 8),
    **_id_fields("parent_span_id", 8),
    "trace_state": _str_field("trace_state"),
    "flags": _int_field("flags"),
    "name": _str_field("name"),
    "kind": _int_field("kind"),
    "start_time_unix_nano": _int_field("start_time_unix_nano"),
    "end_time_unix_nano": _int_field("end_time_unix_nano"),
    "attributes": _attributes_field("attributes"),
    "dropped_attributes_count": _int_field("dropped_attributes_count"),
    "dropped_events_count": _int_field("dropped_events_count"),
    "dropped_links_count": _int_field("dropped_links_count"),
    "status.code": _status_field(_int_field("code")),
    "status.message": _status_field(_str_field("message")),
}

_LOG_FIELDS: Dict[str, FieldAccessor] = {
    **_id_fields("trace_id", 16),
    **_id_fields("span_id", 8),
    "time_unix_nano": _int_field("time_unix_nano"),
    "observed_time_unix_nano": _int_field("observed_time_unix_nano"),
    "severity_number": _int_field("severity_number"),
    "severity_text": _str_field("severity_text"),
    "body": _any_value_field("body"),
    "attributes": _attributes_field("attributes"),
    "dropped_attributes_count": _int_field("dropped_attributes_count"),
    "flags": _int_field("flags"),
    "event_name": _str_field("event_name"),
}


def _get_temporality(metric: Metric) -> int:
    data = metric.data
    if isinstance(data, (Sum, Histogram, ExponentialHistogram)):
        return data.aggregation_temporality
    return 0


def _set_temporality(metric: Metric, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _type_error("aggregation_temporality", "int", value)
    data = metric.data
    if isinstance(data, (Sum, Histogram, ExponentialHistogram)):
        data.aggregation_temporality = value


def _get_monotonic(metric: Metric) -> bool:
    return metric.sum.is_monotonic if metric.sum is not None else False


def _set_monotonic(metric: Metric, value: Any) -> None:
    if not isinstance(value, bool):
        raise _type_error("is_monotonic", "bool", value)
    if metric.sum is not None:
        metric.sum.is_monotonic = value


_METRIC_FIELDS: Dict[str, FieldAccessor] = {
    "name": _str_field("name"),
    "description": _str_field("description"),
    "unit": _str_field("unit"),
    "type": _read_only(lambda metric: int(metric.type)),
    "aggregation_temporality": FieldAccessor(_get_temporality, _set_temporality),
    "is_monotonic": FieldAccessor(_get_monotonic, _set_monotonic),
    "metadata": _attributes_field("metadata"),
}


def _only_on(types, accessor: FieldAccessor) -> FieldAccessor:
    """Restrict a data point field to some data point types.

    On other types the field reads as nil and writes are ignored.
    """

    def get(dp):
        return accessor.get(dp) if isinstance(dp, types) else None

    def setter(dp, value):
        if isinstance(dp, types):
            accessor.set(dp, value)

    return FieldAccessor(get, setter)


def _get_value_double(dp: NumberDataPoint) -> float:
    return dp.as_double if dp.as_double is not None else 0.0


def _set_value_double(dp: NumberDataPoint, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _type_error("value_double", "double", value)
    dp.as_int = None
    dp.as_double = float(value)


def _get_value_int(dp: NumberDataPoint) -> int:
    return dp.as_int if dp.as_int is not None else 0


def _set_value_int(dp: NumberDataPoint, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _type_error("value_int", "int", value)
    dp.as_double = None
    dp.as_int = value


def _int_list_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if not isinstance(value, list) or not all(
            isinstance(v, int) and not isinstance(v, bool) for v in value
        ):
            raise _type_error(attr, "list of ints", value)
        setattr(obj, attr, list(value))

    return FieldAccessor(lambda obj: list(getattr(obj, attr)), setter)


def _float_list_field(attr: str) -> FieldAccessor:
    def setter(obj, value):
        if not isinstance(value, list) or not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in value
        ):
            raise _type_error(attr, "list of doubles", value)
        setattr(obj, attr, [float(v) for v in value])

    return FieldAccessor(lambda obj: list(getattr(obj, attr)), setter)


def _buckets_field(side: str, accessor: FieldAccessor) -> FieldAccessor:
    return FieldAccessor(
        lambda dp: accessor.get(getattr(dp, side)),
        lambda dp, value: accessor.set(getattr(dp, side), value),
    )


_ANY_DATAPOINT = (
    NumberDataPoint,
    HistogramDataPoint,
    ExponentialHistogramDataPoint,
    SummaryDataPoint,
)
_HISTOGRAMS = (HistogramDataPoint, ExponentialHistogramDataPoint)
_COUNTED = (HistogramDataPoint, ExponentialHistogramDataPoint, SummaryDataPoint)
_EXP = ExponentialHistogramDataPoint

_DATAPOINT_FIELDS: Dict[str, FieldAccessor] = {
    "attributes": _attributes_field("attributes"),
    "start_time_unix_nano": _int_field("start_time_unix_nano"),
    "time_unix_nano": _int_field("time_unix_nano"),
    "flags": _only_on(_ANY_DATAPOINT, _int_field("flags")),
    "value_double": _only_on(
        NumberDataPoint, FieldAccessor(_get_value_double, _set_value_double)
    ),
    "value_int": _only_on(
        NumberDataPoint, FieldAccessor(_get_value_int, _set_value_int)
    ),
    "count": _only_on(_COUNTED, _int_field("count")),
    "sum": _only_on(_COUNTED, _float_field("sum")),
    "bucket_counts": _only_on(HistogramDataPoint, _int_list_field("bucket_counts")),
    "explicit_bounds": _only_on(
        HistogramDataPoint, _float_list_field("explicit_bounds")
    ),
    "min": _only_on(_HISTOGRAMS, _float_field("min")),
    "max": _only_on(_HISTOGRAMS, _float_field("max")),
    "scale": _only_on(_EXP, _int_field("scale")),
    "zero_count": _only_on(_EXP, _int_field("zero_count")),
    "positive.offset": _only_on(_EXP, _buckets_field("positive", _int_field("offset"))),
    "positive.bucket_counts": _only_on(
        _EXP, _buckets_field("positive", _int_list_field("bucket_counts"))
    ),
    "negative.offset": _only_on(_EXP, _buckets_field("negative", _int_field("offset"))),
    "negative.bucket_counts": _only_on(
        _EXP, _buckets_field("negative", _int_list_field("bucket_counts"))
    ),
}


@dataclass(frozen=True)
class PathRoot:
    """Fields reachable under one path prefix, and how to reach the object."""

    fields: Dict[str, FieldAccessor]
    target: Callable[[TransformContext], Any]
    group: Optional[Callable[[TransformContext], Any]] = None


def _resource_root() -> PathRoot:
    return PathRoot(_RESOURCE_FIELDS, lambda t: t.resource, lambda t: t.resource_group)


def _scope_root() -> PathRoot:
    return PathRoot(_SCOPE_FIELDS, lambda t: t.scope, lambda t: t.scope_group)


_LEAF_ROOTS: Dict[ContextType, tuple] = {
    ContextType.SPAN: ("span", PathRoot(_SPAN_FIELDS, lambda t: t.span)),
    ContextType.LOG: ("log", PathRoot(_LOG_FIELDS, lambda t: t.log_record)),
    ContextType.METRIC: ("metric", PathRoot(_METRIC_FIELDS, lambda t: t.metric)),
    ContextType.DATAPOINT: (
        "datapoint",
        PathRoot(_DATAPOINT_FIELDS, lambda t: t.datapoint),
    ),
}


def _roots_for(context_type: ContextType) -> Dict[str, PathRoot]:
    leaf_name, leaf_root = _LEAF_ROOTS[context_type]
    roots = {
        leaf_name: leaf_root,
        "resource": _resource_root(),
        "instrumentation_scope": _scope_root(),
        "scope": _scope_root(),
    }
    if context_type is ContextType.DATAPOINT:
        roots["metric"] = PathRoot(_METRIC_FIELDS, lambda t: t.metric)
    return roots


class PathGetSetter:
    """A resolved path: a field accessor plus an optional chain of keys."""

    def __init__(
        self,
        name: str,
        target: Callable[[TransformContext], Any],
        accessor: FieldAccessor,
        keys: List[Union[str, int]],
    ):
        self.name = name
        self._target = target
        self._accessor = accessor
        self.keys = keys

    @property
    def settable(self) -> bool:
        return self._accessor.set is not None

    def get(self, tctx: TransformContext) -> Any:
        value = self._accessor.get(self._target(tctx))
        for key in self.keys:
            value = _index(self.name, value, key)
            if value is None:
                return None
        return value

    def set(self, tctx: TransformContext, value: Any) -> None:
        obj = self._target(tctx)
        if not self.keys:
            self._accessor.set(obj, value)
            return

        root = self._accessor.get(obj)
        if root is None and isinstance(self.keys[0], str):
            root = {}
        container = root
        for key in self.keys[:-1]:
            child = _index(self.name, container, key)
            if child is None:
                child = {}
                _assign(self.name, container, key, child)
            container = child
        _assign(self.name, container, self.keys[-1], value)
        self._accessor.set(obj, root)

    def __repr__(self) -> str:
        return f"PathGetSetter({self.name!r}, keys={self.keys!r})"


class CacheGetSetter(PathGetSetter):
    """The ``cache`` map of the transform context."""

    def __init__(self, keys: List[Union[str, int]]):
        super().__init__(
            "cache",
            lambda tctx: tctx,
            FieldAccessor(lambda tctx: tctx.cache, _set_cache),
            keys,
        )


def _set_cache(tctx: TransformContext, value: Any) -> None:
    if not isinstance(value, dict):
        raise _type_error("cache", "map", value)
    tctx.cache = value


def _index(name: str, value: Any, key: Union[str, int]) -> Any:
    if isinstance(key, str):
        if isinstance(value, dict):
            return value.get(key)
        raise ExecutionError(
            f"cannot index {name} with key {key!r}: "
            f"value is {type(value).__name__}, not a map"
        )
    if isinstance(value, list):
        if not -len(value) <= key < len(value):
            raise ExecutionError(f"index {key} out of range for {name}")
        return value[key]
    raise ExecutionError(
        f"cannot index {name} with {key}: value is {type(value).__name__}, not a list"
    )


def _assign(name: str, container: Any, key: Union[str, int], value: Any) -> None:
    if isinstance(key, str) and isinstance(container, dict):
        container[key] = value
    elif isinstance(key, int) and isinstance(container, list):
        if not -len(container) <= key < len(container):
            raise ExecutionError(f"index {key} out of range for {name}")
        container[key] = value
    else:
        raise ExecutionError(
            f"cannot set {name}[{key!r}]: value is {type(container).__name__}"
        )


def resolve_path(
    context_type: ContextType,
    segments: List[str],
    keys: List[Union[str, int]],
    pos: Optional[int] = None,
) -> PathGetSetter:
    """Bind a path expression to a field of the given context.

    Raises:
        CompileError: if the path does not name a field of the context.
    """
    if segments == ["cache"]:
        return CacheGetSetter(keys)

    roots = _roots_for(context_type)
    _, leaf_root = _LEAF_ROOTS[context_type]
    dotted = ".".join(segments)

    root, rest = leaf_root, segments
    if len(segments) > 1 and segments[0] in roots:
        root, rest = roots[segments[0]], segments[1:]
    field_name = ".".join(rest)

    if field_name == "schema_url" and root.group is not None:
        return PathGetSetter(dotted, root.group, _SCHEMA_URL, keys)

    accessor = root.fields.get(field_name)
    if accessor is None:
        message = f"path {dotted!r} is not valid for the {context_type} context"
        candidates = context_paths(context_type) + list(leaf_root.fields)
        suggestions = get_close_matches(dotted, candidates, n=3)
        if suggestions:
            message += f" (did you mean: {', '.join(suggestions)}?)"
        raise CompileError(message, position=pos)
    return PathGetSetter(dotted, root.target, accessor, keys)


def context_paths(context_type: ContextType) -> List[str]:
    """All fully qualified paths of a context, for help and diagnostics."""
    paths = ["cache"]
    for prefix, root in _roots_for(context_type).items():
        paths.extend(f"{prefix}.{name}" for name in root.fields)
        if root.group is not None:
            paths.append(f"{prefix}.schema_url")
    return sorted(paths)
