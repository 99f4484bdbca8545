"""Outcome interpreter: explicit parsing contracts for CLI output.

The Solana and restaking CLIs only report success and new account addresses
as free-form text. Rather than scatter ``grep``-style matching across the
pipeline, each call site declares an ``OutputRule``: the success marker to
require and, optionally, the line marker and whitespace field holding the
identifier to capture.

Examples:
    >>> rule = OutputRule(success_pattern="Initializing NCN:", extract_marker="Initializing NCN:")
    >>> extract_identifier("Initializing NCN: ABC123\\n", rule)
    'ABC123'
"""

from __future__ import annotations

from dataclasses import dataclass, field

from localnet.core.errors import ExtractionFailure
from localnet.execution.executor import render

TRANSACTION_CONFIRMED = "Transaction confirmed"


@dataclass(frozen=True)
class OutputRule:
    """Parsing contract for one external call.

    Attributes:
        success_pattern: Regex that must match the output for success
        extract_marker: Substring identifying the line holding an identifier
        field_index: Whitespace field of that line to capture (-1 = last)
    """

    success_pattern: str | None = TRANSACTION_CONFIRMED
    extract_marker: str | None = None
    field_index: int = -1

    @property
    def extracts(self) -> bool:
        return self.extract_marker is not None


@dataclass(frozen=True)
class Invocation:
    """An external command paired with its parsing contract."""

    argv: tuple[str, ...]
    rule: OutputRule = field(default_factory=OutputRule)
    description: str = ""

    @property
    def command(self) -> str:
        return render(self.argv)


def extract_identifier(output: str, rule: OutputRule) -> str:
    """Capture the identifier described by ``rule`` from ``output``.

    The first line containing ``rule.extract_marker`` is split on whitespace
    and ``rule.field_index`` selected.

    Raises:
        ExtractionFailure: no line carries the marker, or the selected field
            is missing or empty.
    """
    if rule.extract_marker is None:
        raise ValueError("rule does not describe an identifier to extract")

    for line in output.splitlines():
        if rule.extract_marker not in line:
            continue
        fields = line.split()
        try:
            token = fields[rule.field_index].strip()
        except IndexError:
            token = ""
        if token and token != rule.extract_marker.split()[-1]:
            return token
        raise ExtractionFailure(
            f"Line carrying {rule.extract_marker!r} has no identifier",
            marker=rule.extract_marker,
            line=line,
            output=output,
        )

    raise ExtractionFailure(
        f"No line carrying {rule.extract_marker!r} in command output",
        marker=rule.extract_marker,
        output=output,
    )


__all__ = ["TRANSACTION_CONFIRMED", "Invocation", "OutputRule", "extract_identifier"]
