#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Dependency-closure aggregation of compile commands.

Walks the build graph from a set of root targets, synthesizes the compile
commands of every eligible target exactly once (however many dependency paths
reach it) and flattens the per-target results into one ordered list.

Ordering is depth-first preorder: roots in the given order, dependencies in
declaration order, each target placed at its first visit.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from compdb.build_graph import BuildGraph, BuildTarget
from compdb.command_synth import CompileCommandEntry, synthesize_target
from compdb.constants import ALL_RULES
from compdb.toolchain import CcToolchain

logger = logging.getLogger(__name__)

Root = Union[str, BuildTarget]


class AggregationSet:
    """Per-target entry lists keyed by label, each computed at most once.

    Safe for concurrent use: the first caller for a label computes its entries
    while later callers for the same label wait and receive the same tuple.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[CompileCommandEntry, ...]] = {}
        self._order: Dict[str, None] = {}
        self._lock = threading.Lock()
        self._label_locks: Dict[str, threading.Lock] = {}
        self.synthesis_count = 0
        self.visited: List[str] = []
        self.skipped: List[str] = []

    def __contains__(self, label: object) -> bool:
        with self._lock:
            return label in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def add_order(self, label: str) -> None:
        """Record the flatten position of a label (first call wins)."""
        with self._lock:
            if label not in self._label_locks:
                self._label_locks[label] = threading.Lock()
                self._order[label] = None

    def get_or_compute(self, label: str, compute: Callable[[], Iterable[CompileCommandEntry]]) -> Tuple[CompileCommandEntry, ...]:
        with self._lock:
            cached = self._entries.get(label)
            if cached is not None:
                return cached
            label_lock = self._label_locks.setdefault(label, threading.Lock())

        with label_lock:
            with self._lock:
                cached = self._entries.get(label)
            if cached is not None:
                return cached

            entries = tuple(compute())
            with self._lock:
                self._entries[label] = entries
                self.synthesis_count += 1
                self._order.setdefault(label, None)
            return entries

    def entries_for(self, label: str) -> Tuple[CompileCommandEntry, ...]:
        with self._lock:
            return self._entries.get(label, ())

    @property
    def labels(self) -> List[str]:
        with self._lock:
            return [label for label in self._order if label in self._entries]

    def flatten(self) -> List[CompileCommandEntry]:
        """Concatenate per-target entries in first-visit order."""
        with self._lock:
            result: List[CompileCommandEntry] = []
            for label in self._order:
                result.extend(self._entries.get(label, ()))
            return result


def is_eligible(graph: BuildGraph, target: BuildTarget) -> bool:
    """Targets of a recognised rule kind in the invocation workspace."""
    return target.kind in ALL_RULES and not graph.is_external(target)


def _root_labels(graph: BuildGraph, roots: Iterable[Root]) -> List[str]:
    labels: List[str] = []
    for root in roots:
        label = graph.target(root.label if isinstance(root, BuildTarget) else root).label
        if label not in labels:
            labels.append(label)
    return labels


def walk(graph: BuildGraph, roots: Sequence[str], aggregation: AggregationSet) -> List[str]:
    """Depth-first preorder walk recording visit state in aggregation.

    Ineligible targets contribute nothing themselves but their dependencies
    are still walked.

    Returns:
        Labels of eligible targets in first-visit order
    """
    eligible: List[str] = []
    seen: Set[str] = set()
    stack = list(reversed(roots))

    while stack:
        label = stack.pop()
        if label in seen:
            continue
        seen.add(label)
        aggregation.visited.append(label)

        target = graph.target(label)
        if is_eligible(graph, target):
            aggregation.add_order(label)
            eligible.append(label)
        else:
            logger.debug("Skipping %s (%s)", label, "external" if graph.is_external(target) else target.kind)
            aggregation.skipped.append(label)

        stack.extend(reversed(graph.dependencies(label)))

    return eligible


def collect(graph: BuildGraph, roots: Iterable[Root], toolchain: CcToolchain, max_workers: Optional[int] = 1) -> AggregationSet:
    """Walk the dependency closure of roots and synthesize each eligible target once.

    Args:
        graph: Build graph oracle
        roots: Root targets or labels
        toolchain: Toolchain oracle
        max_workers: Threads used for synthesis (1 = synchronous, None = executor default)

    Returns:
        The populated AggregationSet

    Raises:
        TargetNotFoundError: If a root label is not in the graph
    """
    aggregation = AggregationSet()
    labels = walk(graph, _root_labels(graph, roots), aggregation)

    def synthesize_label(label: str) -> Tuple[CompileCommandEntry, ...]:
        target = graph.target(label)
        return aggregation.get_or_compute(label, lambda: synthesize_target(target, toolchain))

    if max_workers == 1 or len(labels) <= 1:
        for label in labels:
            synthesize_label(label)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            list(pool.map(synthesize_label, labels))

    logger.info(
        "Synthesized %s targets (%s visited, %s skipped)", aggregation.synthesis_count, len(aggregation.visited), len(aggregation.skipped)
    )
    return aggregation


def aggregate(graph: BuildGraph, roots: Iterable[Root], toolchain: CcToolchain, max_workers: Optional[int] = 1) -> List[CompileCommandEntry]:
    """Return the compilation database entries for the dependency closure of roots.

    Entries of a target reachable through several paths appear once. Identical
    entries produced by different targets are all kept.
    """
    return collect(graph, roots, toolchain, max_workers=max_workers).flatten()
