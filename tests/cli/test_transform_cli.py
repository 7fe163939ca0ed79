import json
import logging

import pytest
from click.testing import CliRunner

from ottlcli import __version__
from ottlcli.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def traces_file(otlp_dir):
    return str(otlp_dir / "traces.json")


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    """Point the default configuration at an empty directory."""
    monkeypatch.setattr("ottlcli.config.config_dir", tmp_path / "config")
    return tmp_path / "config"


def invoke(runner, args, statement=None):
    return runner.invoke(cli, args, input=statement)


@pytest.mark.short
def test_version(runner):
    result = invoke(runner, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.short
def test_transform_help(runner):
    result = invoke(runner, ["transform", "--help"])
    assert result.exit_code == 0
    assert "--input-file" in result.output
    assert "--context" in result.output
    assert "--debug" in result.output


@pytest.mark.short
class TestTransformCommand:
    @pytest.mark.filterwarnings("error::DeprecationWarning")
    def test_statement_from_stdin(self, runner, traces_file, no_config):
        result = invoke(
            runner,
            ["transform", "--input-file", traces_file],
            statement='  set(attributes["env"], "test")\n',
        )
        assert result.exit_code == 0, result.output
        assert not result.stdout_bytes.endswith(b"\n")
        spans = json.loads(result.stdout_bytes)["resourceSpans"][0]["scopeSpans"][0][
            "spans"
        ]
        assert all(
            {"key": "env", "value": {"stringValue": "test"}} in span["attributes"]
            for span in spans
        )

    @pytest.mark.filterwarnings("error::DeprecationWarning")
    def test_statement_option_and_stdin_input(self, runner, otlp_dir, no_config):
        data = (otlp_dir / "sum_single.json").read_text()
        result = runner.invoke(
            cli,
            ["transform", "-i", "-", "-s", 'set(name, "new_metric")', "-c", "metric"],
            input=data,
        )
        assert result.exit_code == 0, result.output
        metric = json.loads(result.stdout_bytes)["resourceMetrics"][0]["scopeMetrics"][
            0
        ]["metrics"][0]
        assert metric["name"] == "new_metric"

    def test_output_file_and_indent(self, runner, traces_file, tmp_path, no_config):
        out = tmp_path / "out.json"
        result = invoke(
            runner,
            ["transform", "-i", traces_file, "-o", str(out), "--indent", "2"],
            statement='set(name, "renamed")',
        )
        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == b""
        text = out.read_text()
        assert text.startswith('{\n  "resourceSpans"')
        assert not text.endswith("\n")

    def test_empty_statement_on_stdin(self, runner, traces_file, no_config, capture_logs):
        result = invoke(runner, ["transform", "-i", traces_file], statement="  \n")
        assert result.exit_code == 1
        assert "no OTTL statement provided on stdin" in capture_logs.getvalue()

    def test_compile_error(self, runner, traces_file, no_config, capture_logs):
        result = invoke(
            runner, ["transform", "-i", traces_file], statement="invalid_function()"
        )
        assert result.exit_code == 1
        logged = capture_logs.getvalue()
        assert "compile error: undefined function 'invalid_function'" in logged
        assert "  | invalid_function()\n  | ^" in logged

    def test_invalid_context(self, runner, traces_file, no_config, capture_logs):
        result = invoke(
            runner,
            ["transform", "-i", traces_file, "--context", "bogus"],
            statement='set(name, "x")',
        )
        assert result.exit_code == 1
        assert "(valid: span, log, metric, datapoint)" in capture_logs.getvalue()

    def test_undetectable_input(self, runner, tmp_path, no_config, capture_logs):
        empty = tmp_path / "empty.json"
        empty.write_text("{}")
        result = invoke(runner, ["transform", "-i", str(empty)], statement='set(name, "x")')
        assert result.exit_code == 1
        assert "detection error" in capture_logs.getvalue()

    def test_execution_error(self, runner, traces_file, no_config, capture_logs):
        result = invoke(runner, ["transform", "-i", traces_file], statement="set(name, 1)")
        assert result.exit_code == 1
        assert "--> resource 0, scope 0, record 0" in capture_logs.getvalue()

    def test_missing_input_file(self, runner, tmp_path, no_config, capture_logs):
        result = invoke(
            runner,
            ["transform", "-i", str(tmp_path / "missing.json")],
            statement='set(name, "x")',
        )
        assert result.exit_code == 1
        assert "io error: failed to read input file" in capture_logs.getvalue()

    def test_stdin_input_requires_statement_option(self, runner, no_config):
        result = invoke(runner, ["transform", "-i", "-"], statement="{}")
        assert result.exit_code == 2

    def test_input_file_is_required(self, runner):
        result = invoke(runner, ["transform"], statement='set(name, "x")')
        assert result.exit_code == 2

    def test_negative_indent_is_usage_error(self, runner, traces_file):
        result = invoke(
            runner, ["transform", "-i", traces_file, "--indent", "-1"], statement="x"
        )
        assert result.exit_code == 2

    def test_debug_logging(self, runner, traces_file, no_config, capture_logs):
        result = invoke(
            runner,
            ["--debug", "transform", "-i", traces_file],
            statement='set(name, "x")',
        )
        assert result.exit_code == 0
        logged = capture_logs.getvalue()
        assert "Detected span context" in logged
        assert "Executed statement 3 time(s) in span context" in logged

    def test_log_handler_is_replaced_per_invocation(
        self, runner, traces_file, no_config
    ):
        args = ["transform", "-i", traces_file, "-s", 'set(name, "x")']
        for _ in range(2):
            result = invoke(runner, args)
            assert result.exit_code == 0
        handlers = logging.getLogger("ottlcli").handlers
        assert [h.get_name() for h in handlers].count("ottlcli") == 1


@pytest.mark.short
class TestConfiguredDefaults:
    def test_context_and_indent_from_config(self, runner, traces_file, tmp_path):
        cfg = tmp_path / "ottlcli.cfg"
        cfg.write_text("[transform]\ncontext = log\n\n[output]\nindent = 4\n")
        result = invoke(
            runner,
            ["transform", "-i", traces_file, "--config", str(cfg)],
            statement='set(body, "x")',
        )
        assert result.exit_code == 0, result.output
        # the trace document parses as an empty log document
        assert result.stdout_bytes == b"{}"

    def test_command_line_wins_over_config(self, runner, traces_file, tmp_path):
        cfg = tmp_path / "ottlcli.cfg"
        cfg.write_text("[transform]\ncontext = log\n\n[output]\nindent = 4\n")
        result = invoke(
            runner,
            ["transform", "-i", traces_file, "--config", str(cfg), "-c", "span"],
            statement='set(name, "x")',
        )
        assert result.exit_code == 0, result.output
        assert result.stdout_bytes.startswith(b'{\n    "resourceSpans"')

    def test_invalid_indent_in_config(self, runner, traces_file, tmp_path, capture_logs):
        cfg = tmp_path / "ottlcli.cfg"
        cfg.write_text("[output]\nindent = wide\n")
        result = invoke(
            runner,
            ["transform", "-i", traces_file, "--config", str(cfg)],
            statement='set(name, "x")',
        )
        assert result.exit_code == 1
        assert "invalid [output] indent" in capture_logs.getvalue()
