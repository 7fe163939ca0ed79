import pytest

from ottlcli.classifier import classify, reparse
from ottlcli.context import ContextType
from ottlcli.dispatch import apply, datapoints_of
from ottlcli.errors import ExecutionError, ExecutionLocation
from ottlcli.otlp.metrics import Metric
from ottlcli.ottl import compile_statement


class SpyProgram:
    """Records every context it is executed against; optionally fails."""

    def __init__(self, fail_at: int = None):
        self.fail_at = fail_at
        self.visited = []

    def execute(self, tctx):
        if self.fail_at is not None and len(self.visited) == self.fail_at:
            raise ExecutionError("boom")
        self.visited.append(tctx)
        return None, True


@pytest.mark.short
class TestApply:
    def test_one_execution_per_span_in_order(self, traces_json):
        context_type, document = classify(traces_json)
        spy = SpyProgram()
        assert apply(context_type, document, spy) == 3
        assert [t.span.name for t in spy.visited] == ["GET /cart", "SELECT cart", "charge"]
        assert [t.resource.attributes[0].value.string_value for t in spy.visited] == [
            "checkout",
            "checkout",
            "payment",
        ]

    def test_one_execution_per_log(self, logs_json):
        context_type, document = classify(logs_json)
        spy = SpyProgram()
        assert apply(context_type, document, spy) == 3
        assert [t.log_record.severity_text for t in spy.visited] == [
            "INFO",
            "WARN",
            "ERROR",
        ]

    def test_one_execution_per_metric(self, metrics_json):
        context_type, document = classify(metrics_json)
        spy = SpyProgram()
        assert apply(context_type, document, spy) == 6

    def test_one_execution_per_datapoint(self, metrics_json):
        document = reparse(metrics_json, ContextType.DATAPOINT)
        spy = SpyProgram()
        # 2 gauge + 1 sum + 1 histogram + 1 exponential histogram + 1 summary,
        # nothing for the metric without data
        assert apply(ContextType.DATAPOINT, document, spy) == 6
        assert [t.metric.name for t in spy.visited] == [
            "cpu.utilization",
            "cpu.utilization",
            "http.requests",
            "http.duration",
            "payload.size",
            "queue.latency",
        ]

    def test_datapoint_context_holds_owning_metric(self, load_otlp):
        document = reparse(load_otlp("sum_single.json"), ContextType.DATAPOINT)
        spy = SpyProgram()
        apply(ContextType.DATAPOINT, document, spy)
        (tctx,) = spy.visited
        assert tctx.datapoint is tctx.metric.sum.data_points[0]

    def test_empty_document(self):
        document = reparse(b"{}", ContextType.LOG)
        assert apply(ContextType.LOG, document, SpyProgram()) == 0

    @pytest.mark.parametrize("fail_at", [0, 1, 2])
    def test_abort_at_first_failure(self, traces_json, fail_at):
        context_type, document = classify(traces_json)
        spy = SpyProgram(fail_at=fail_at)
        with pytest.raises(ExecutionError) as exc_info:
            apply(context_type, document, spy)
        assert len(spy.visited) == fail_at
        assert exc_info.value.__cause__ is not None

    def test_failure_location(self, traces_json):
        context_type, document = classify(traces_json)
        with pytest.raises(ExecutionError) as exc_info:
            apply(context_type, document, SpyProgram(fail_at=2))
        assert exc_info.value.location == ExecutionLocation(resource=1, scope=0, record=0)
        assert "boom" in exc_info.value.message

    def test_datapoint_failure_location(self, metrics_json):
        document = reparse(metrics_json, ContextType.DATAPOINT)
        with pytest.raises(ExecutionError) as exc_info:
            apply(ContextType.DATAPOINT, document, SpyProgram(fail_at=1))
        location = exc_info.value.location
        assert location == ExecutionLocation(
            resource=0, scope=0, record=0, metric_type="gauge", datapoint=1
        )
        assert str(location) == "resource 0, scope 0, record 0, gauge datapoint 1"

    def test_context_type_must_match_document(self, traces_json):
        _, document = classify(traces_json)
        with pytest.raises(ExecutionError):
            apply(ContextType.LOG, document, SpyProgram())

    def test_mutations_are_visible_to_later_records(self, traces_json):
        context_type, document = classify(traces_json)
        statement = compile_statement(
            'set(resource.attributes["visits"], 1) '
            'where resource.attributes["visits"] == nil',
            context_type,
        )
        apply(context_type, document, statement)
        counter = compile_statement(
            'set(resource.attributes["visits"], resource.attributes["visits"] + 1)',
            context_type,
        )
        apply(context_type, document, counter)
        first, second = document.resources
        # two spans share the first resource
        assert first.resource.attributes[-1].value.int_value == 3
        assert second.resource.attributes[-1].value.int_value == 2


@pytest.mark.short
def test_datapoints_of_metric_without_data():
    assert datapoints_of(Metric(name="empty")) == (None, ())
