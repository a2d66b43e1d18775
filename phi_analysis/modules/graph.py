"""
Dependency-ordered column graph

A ColumnGraph is an immutable list of stages over an awkward event array.
Each stage either defines new columns from existing ones or filters
events. Builder methods return a new graph and never rewrite earlier
stages, so the order in which stages are appended is the order in which
they run, and every stage can only consume columns that exist before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Sequence, Tuple

import awkward as ak

from .exceptions import BranchMissingError, GraphOrderError

DEFINE = "define"
FILTER = "filter"


@dataclass(frozen=True)
class Stage:
    """One step of a ColumnGraph."""

    kind: str
    outputs: Tuple[str, ...]
    inputs: Tuple[str, ...]
    func: Callable
    description: str = ""


class ColumnGraph:
    """
    Statically ordered pipeline of column definitions and event filters

    Attributes:
        source_columns: Columns the input events must provide
        stages: Stages in execution order
    """

    def __init__(self, source_columns: Iterable[str], stages: Iterable[Stage] = ()) -> None:
        self.source_columns: Tuple[str, ...] = tuple(source_columns)
        self.stages: Tuple[Stage, ...] = tuple(stages)
        self.logger = logging.getLogger("PhiAnalysis.ColumnGraph")

    @property
    def columns(self) -> Tuple[str, ...]:
        """All columns available after the last stage."""
        defined = [name for stage in self.stages for name in stage.outputs]
        return self.source_columns + tuple(defined)

    def _append(self, stage: Stage) -> ColumnGraph:
        available = set(self.columns)

        missing = [name for name in stage.inputs if name not in available]
        if missing:
            target = ", ".join(stage.outputs) or stage.description
            raise GraphOrderError(
                f"Stage '{target}' consumes undefined column(s): {missing}\n"
                f"Columns defined so far: {sorted(available)}"
            )

        duplicates = [name for name in stage.outputs if name in available]
        if duplicates or len(set(stage.outputs)) != len(stage.outputs):
            raise GraphOrderError(f"Column(s) already defined: {duplicates or list(stage.outputs)}")

        return ColumnGraph(self.source_columns, self.stages + (stage,))

    def define(self, name: str, func: Callable, inputs: Sequence[str]) -> ColumnGraph:
        """Add a column computed as func(*inputs)."""
        return self._append(Stage(DEFINE, (name,), tuple(inputs), func))

    def define_many(self, names: Sequence[str], func: Callable, inputs: Sequence[str]) -> ColumnGraph:
        """
        Add several columns from a single call

        `func(*inputs)` returns either a sequence aligned with `names` or a
        mapping keyed by column name.
        """
        return self._append(Stage(DEFINE, tuple(names), tuple(inputs), func))

    def filter(self, func: Callable, inputs: Sequence[str], description: str = "") -> ColumnGraph:
        """Keep events where func(*inputs) is True (absent counts as False)."""
        description = description or f"Filter on {', '.join(inputs)}"
        return self._append(Stage(FILTER, (), tuple(inputs), func, description))

    def describe(self) -> List[str]:
        """Human-readable stage list, in execution order."""
        lines = []
        for i, stage in enumerate(self.stages):
            if stage.kind == FILTER:
                lines.append(f"{i:3d} filter  {stage.description} <- {', '.join(stage.inputs)}")
            else:
                lines.append(f"{i:3d} define  {', '.join(stage.outputs)} <- {', '.join(stage.inputs)}")
        return lines

    def evaluate(self, events: ak.Array) -> ak.Array:
        """
        Run all stages on an event array

        Args:
            events: Awkward array providing every source column

        Returns:
            Events surviving all filters, with all defined columns attached

        Raises:
            BranchMissingError: If a source column is missing from events
        """
        for name in self.source_columns:
            if name not in events.fields:
                raise BranchMissingError(name)

        for stage in self.stages:
            args = [events[name] for name in stage.inputs]

            if stage.kind == FILTER:
                mask = ak.fill_none(stage.func(*args), False)
                n_before = len(events)
                events = events[mask]
                n_after = len(events)
                fraction = 100 * n_after / n_before if n_before > 0 else 0.0
                self.logger.info(f"{stage.description}: {n_before} → {n_after} ({fraction:.1f}%)")
                continue

            result = stage.func(*args)
            if len(stage.outputs) == 1:
                values = [result]
            elif isinstance(result, Mapping):
                values = [result[name] for name in stage.outputs]
            else:
                values = list(result)
                if len(values) != len(stage.outputs):
                    raise GraphOrderError(
                        f"Stage '{', '.join(stage.outputs)}' returned {len(values)} columns"
                    )

            for name, value in zip(stage.outputs, values):
                events = ak.with_field(events, value, name)

        return events
