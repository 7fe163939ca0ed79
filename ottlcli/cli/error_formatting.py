"""Error formatting for CLI output."""

from ottlcli.errors import CompileError, ExecutionError, TransformError


def _caret_lines(statement: str, position: int) -> list:
    # only the line holding the offending position is shown
    start = statement.rfind("\n", 0, position) + 1
    end = statement.find("\n", position)
    line = statement[start:] if end == -1 else statement[start:end]
    return [f"  | {line}", f"  | {' ' * (position - start)}^"]


def format_transform_error(error: TransformError) -> str:
    """Format a TransformError to present useful information to the user.

    Args:
        error: The error raised by a transform run

    Returns:
        A message prefixed with the error category. Compile errors show the
        statement with a marker under the offending position, execution
        errors the record the statement failed on.

    Example output:
        compile error: expected ')' but found end of statement
          | set(attributes["env"], "test"
          |                              ^
    """
    lines = [f"{error.category} error: {error.message}"]

    if isinstance(error, CompileError) and error.statement:
        if error.position is not None and 0 <= error.position <= len(
            error.statement
        ):
            lines.extend(_caret_lines(error.statement, error.position))
        else:
            lines.append(f"  | {error.statement.strip()}")

    if isinstance(error, ExecutionError) and error.location is not None:
        lines.append(f"  --> {error.location}")

    return "\n".join(lines)
