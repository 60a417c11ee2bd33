"""
Search Engine - Bounded, memoized lookahead over craft states.

At each node the eligible actions are ranked by ActionOrderer and the top
beam-width of them are expanded. Each expansion applies one action through
the reducer and recurses with one less depth and the next forecast
condition. The root expands every eligible action so that alternatives can
be rated.

A node stops expanding when:
- both targets are met (scored with the target-met bonus)
- stability is at the floor (scored with the death penalty)
- no action is playable (dead end, scored with the death penalty)
- depth is exhausted
- the node or time budget is spent (soft cutoff: static score, logged)

With condition branching on, a child's value is the probability-weighted
average over the likely next-turn conditions; otherwise the most likely
one is followed.

Iterations deepen geometrically (see SearchConfig.deepening_depths) and
stop early once a finished iteration's best line reaches both targets.

Every expanded node writes {score, best_action_key, depth} into a
TranspositionTable keyed by (state signature, step, condition signature,
remaining depth). The first write for a key wins. The table belongs to a
single search call and is discarded with it.

Rotations are read back from this table (see rotation.py); they are never
re-derived by re-running a shallower search.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from ..engine_core.action import Catalog
from ..engine_core.conditions import ConditionContext
from ..engine_core.reducer import Reducer
from ..engine_core.state import CraftState, Targets
from .evaluator import Pace, StateScorer
from .ordering import ActionOrderer
from .profiles import SearchConfig

logger = logging.getLogger(__name__)


class SearchStatus(Enum):
    """How a search call ended."""
    COMPLETE = "complete"
    BUDGET_EXCEEDED = "budget_exceeded"
    NO_LEGAL_ACTION = "no_legal_action"
    TARGETS_MET = "targets_met"


@dataclass(frozen=True)
class TranspositionEntry:
    """What the search concluded about one state at one remaining depth."""
    score: float
    best_action_key: str | None
    depth_searched: int


class TranspositionTable:
    """
    Memo of searched states.

    Write-once: a second put() for the same key is ignored.
    """

    def __init__(self, targets: Targets, bucket_size: int = 100):
        self.targets = targets
        self.bucket_size = bucket_size
        self._entries: dict[tuple, TranspositionEntry] = {}

    def key(self, state: CraftState, context: ConditionContext, depth: int) -> tuple:
        # Step is part of the key because the score charges per step.
        return (
            state.signature(self.targets, self.bucket_size),
            state.step,
            context.signature(),
            depth,
        )

    def get(self, key: tuple) -> TranspositionEntry | None:
        return self._entries.get(key)

    def put(self, key: tuple, entry: TranspositionEntry) -> None:
        if key not in self._entries:
            self._entries[key] = entry

    def lookup(
        self,
        state: CraftState,
        context: ConditionContext,
        depth: int,
    ) -> TranspositionEntry | None:
        return self.get(self.key(state, context, depth))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple) -> bool:
        return key in self._entries


@dataclass
class SearchMetrics:
    """Counters for one search call."""
    nodes: int = 0
    table_hits: int = 0
    cutoffs: int = 0
    elapsed: float = 0.0
    depth_reached: int = 0
    budget_exceeded: bool = False

    def to_dict(self) -> dict[str, float]:
        return {
            "nodes": self.nodes,
            "table_hits": self.table_hits,
            "cutoffs": self.cutoffs,
            "elapsed_ms": round(self.elapsed * 1000, 2),
            "depth_reached": self.depth_reached,
            "budget_exceeded": self.budget_exceeded,
        }


@dataclass
class SearchOutcome:
    """
    Result of one search call.

    root_values holds the searched value of every eligible root action,
    in ranking order, without any stall penalty.
    """
    score: float
    best_action_key: str | None
    status: SearchStatus
    depth: int
    table: TranspositionTable
    metrics: SearchMetrics
    root_values: dict[str, float] = field(default_factory=dict)


class SearchEngine:
    """
    Bounded best-first search over one catalog and one set of targets.

    Usage:
        engine = SearchEngine(catalog, targets, config)
        outcome = engine.search(state, context)
        outcome.best_action_key
    """

    def __init__(
        self,
        catalog: Catalog,
        targets: Targets,
        config: SearchConfig | None = None,
    ):
        self.catalog = catalog
        self.targets = targets
        self.config = config or SearchConfig()
        self.reducer = Reducer(catalog, targets)
        self.pace = Pace.estimate(catalog)
        self._actions = list(catalog)

        # Per-call state, reset by search()
        self.scorer: StateScorer | None = None
        self.orderer: ActionOrderer | None = None
        self.table: TranspositionTable | None = None
        self.metrics = SearchMetrics()
        self._node_budget = self.config.node_budget
        self._deadline: float | None = None

    def search(
        self,
        state: CraftState,
        context: ConditionContext,
        depth_budget: int | None = None,
        time_budget: float | None = None,
        node_budget: int | None = None,
    ) -> SearchOutcome:
        """
        Search from state and return the best root action and its score.

        Budgets default to the config. Exhausting a budget is not an
        error: the deepest finished iteration (or the partial first one)
        is returned with status BUDGET_EXCEEDED.
        """
        config = self.config
        depth_budget = depth_budget if depth_budget is not None else config.depth
        time_budget = time_budget if time_budget is not None else config.time_budget
        node_budget = node_budget if node_budget is not None else config.node_budget

        started = time.perf_counter()
        self.scorer = StateScorer(self.targets, config.weights, self.pace)
        self.orderer = ActionOrderer(self.reducer, self.targets, self.pace, config.stall_weight)
        self.table = TranspositionTable(self.targets, config.progress_bucket_size)
        self.metrics = SearchMetrics()
        self._node_budget = node_budget
        self._deadline = started + time_budget if time_budget is not None else None

        if self.targets.met(state):
            return self._finish(started, SearchOutcome(
                score=self.scorer.score(state),
                best_action_key=None,
                status=SearchStatus.TARGETS_MET,
                depth=0,
                table=self.table,
                metrics=self.metrics,
            ))

        outcome = None
        for depth in config.deepening_depths(depth_budget):
            attempt = self._search_root(state, context, depth)
            if attempt.status == SearchStatus.NO_LEGAL_ACTION:
                logger.info("No legal action at root (step %d)", state.step)
                return self._finish(started, attempt)
            if self.metrics.budget_exceeded:
                if outcome is None:
                    outcome = attempt
                outcome.status = SearchStatus.BUDGET_EXCEEDED
                break
            outcome = attempt
            self.metrics.depth_reached = depth
            if self._line_finishes(state, context, depth):
                break

        return self._finish(started, outcome)

    def _finish(self, started: float, outcome: SearchOutcome) -> SearchOutcome:
        self.metrics.elapsed = time.perf_counter() - started
        if self.metrics.budget_exceeded:
            logger.info(
                "Search budget exceeded: %d nodes, %.1f ms, depth %d",
                self.metrics.nodes,
                self.metrics.elapsed * 1000,
                outcome.depth,
            )
        return outcome

    # =========================================================================
    # Recursion
    # =========================================================================

    def _search_root(
        self,
        state: CraftState,
        context: ConditionContext,
        depth: int,
    ) -> SearchOutcome:
        ranked = self.orderer.order_actions(state, self._actions, context)
        eligible = [r for r in ranked if r.eligible]
        if not eligible:
            return SearchOutcome(
                score=self.scorer.dead_end_score(state),
                best_action_key=None,
                status=SearchStatus.NO_LEGAL_ACTION,
                depth=depth,
                table=self.table,
                metrics=self.metrics,
            )

        key = self.table.key(state, context, depth)
        root_values: dict[str, float] = {}
        best_score = float("-inf")
        best_key = None

        self.metrics.nodes += 1
        for candidate in eligible:
            child, _ = self.reducer.transition(state, candidate.action, context)
            value = self._child_value(child, context, depth - 1)
            root_values[candidate.key] = value
            if value > best_score:
                best_score = value
                best_key = candidate.key

        self.table.put(key, TranspositionEntry(best_score, best_key, depth))
        return SearchOutcome(
            score=best_score,
            best_action_key=best_key,
            status=SearchStatus.COMPLETE,
            depth=depth,
            table=self.table,
            metrics=self.metrics,
            root_values=root_values,
        )

    def _value(self, state: CraftState, context: ConditionContext, depth: int) -> float:
        """Searched value of a state with depth moves left."""
        table = self.table
        key = table.key(state, context, depth)
        entry = table.get(key)
        if entry is not None:
            self.metrics.table_hits += 1
            return entry.score

        if self.targets.met(state) or state.is_dead or depth <= 0:
            score = self.scorer.score(state)
            table.put(key, TranspositionEntry(score, None, 0))
            return score

        if self._out_of_budget():
            self.metrics.cutoffs += 1
            return self.scorer.score(state)

        self.metrics.nodes += 1
        ranked = self.orderer.order_actions(state, self._actions, context)
        eligible = [r for r in ranked if r.eligible]
        if not eligible:
            score = self.scorer.dead_end_score(state)
            table.put(key, TranspositionEntry(score, None, depth))
            return score

        best_score = float("-inf")
        best_key = None
        for candidate in eligible[: self.config.beam_width_at(depth)]:
            child, _ = self.reducer.transition(state, candidate.action, context)
            value = self._child_value(child, context, depth - 1)
            if value > best_score:
                best_score = value
                best_key = candidate.key

        table.put(key, TranspositionEntry(best_score, best_key, depth))
        return best_score

    def _child_value(self, child: CraftState, context: ConditionContext, depth: int) -> float:
        """Value of a child reached under context, over the next turn's conditions."""
        config = self.config
        outcomes = context.transitions(
            config.condition_branching,
            config.branch_min_probability,
            config.branch_limit,
        )
        if len(outcomes) == 1:
            return self._value(child, outcomes[0][0], depth)
        return sum(p * self._value(child, next_context, depth) for next_context, p in outcomes)

    def _line_finishes(self, state: CraftState, context: ConditionContext, depth: int) -> bool:
        """Whether the best line recorded from the root reaches both targets."""
        while depth > 0:
            entry = self.table.lookup(state, context, depth)
            if entry is None or entry.best_action_key is None:
                break
            action = self.catalog.get(entry.best_action_key)
            state, _ = self.reducer.transition(state, action, context)
            context = context.advance()
            depth -= 1
        return self.targets.met(state)

    def _out_of_budget(self) -> bool:
        if self.metrics.budget_exceeded:
            return True
        exceeded = self.metrics.nodes >= self._node_budget or (
            self._deadline is not None and time.perf_counter() >= self._deadline
        )
        if exceeded:
            self.metrics.budget_exceeded = True
        return exceeded


def search(
    catalog: Catalog,
    targets: Targets,
    state: CraftState,
    context: ConditionContext,
    depth_budget: int | None = None,
    time_budget: float | None = None,
    node_budget: int | None = None,
    config: SearchConfig | None = None,
) -> SearchOutcome:
    """Convenience function for a one-off search."""
    engine = SearchEngine(catalog, targets, config)
    return engine.search(state, context, depth_budget, time_budget, node_budget)
