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
"""Build graph model: targets, compilation contexts and the graph oracle.

The build graph is owned by the build system. This module models the read-only
view the compilation database generator needs from it: for each target its rule
kind, declared sources and headers, declared dependencies and the resolved
compilation context. Targets are stored on a NetworkX DiGraph with edges
pointing from a dependent target to its dependency.
"""

import os
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from dataclasses import dataclass, field

import networkx as nx

from compdb.constants import GraphBuildError, GraphDescriptionError, TargetNotFoundError

logger = logging.getLogger(__name__)

Define = Tuple[str, Optional[str]]


def _ordered_unique(items: Iterable[Any]) -> Tuple[Any, ...]:
    """Return items as a tuple with later duplicates removed."""
    seen: Set[Any] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return tuple(result)


@dataclass(frozen=True)
class Label:
    """Parsed target label of the form [@workspace]//package:name.

    Attributes:
        workspace_name: Repository the target lives in ("" for the main workspace)
        package: Package path relative to the workspace root
        name: Target name inside the package
    """

    workspace_name: str
    package: str
    name: str

    @classmethod
    def parse(cls, text: str) -> "Label":
        """Parse a label string.

        "//pkg" is shorthand for "//pkg:pkg", "@repo//..." selects an external
        repository and "@//..." or "@@//..." the main one.

        Raises:
            GraphDescriptionError: If the text is not an absolute label
        """
        raw = text.strip()
        workspace = ""
        if raw.startswith("@"):
            raw = raw.lstrip("@")
            if "//" not in raw:
                raise GraphDescriptionError(f"Invalid label '{text}': missing '//'")
            workspace, raw = raw.split("//", 1)
            raw = "//" + raw
        if not raw.startswith("//"):
            raise GraphDescriptionError(f"Invalid label '{text}': labels must be absolute")

        body = raw[2:]
        if ":" in body:
            package, name = body.split(":", 1)
        else:
            package = body
            name = body.rsplit("/", 1)[-1]
        if not name:
            raise GraphDescriptionError(f"Invalid label '{text}': empty target name")
        return cls(workspace_name=workspace, package=package, name=name)

    def __str__(self) -> str:
        prefix = f"@{self.workspace_name}" if self.workspace_name else ""
        return f"{prefix}//{self.package}:{self.name}"


def canonical_label(text: str) -> str:
    """Normalize a label string (e.g. "//a" -> "//a:a")."""
    return str(Label.parse(text))


def string_list(data: Dict[str, Any], key: str, context: str = "") -> List[str]:
    """Return data[key] as a list of strings ([] if absent).

    Raises:
        GraphDescriptionError: If the value is not a JSON list of strings
    """
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        where = f"{context}: " if context else ""
        raise GraphDescriptionError(f"{where}'{key}' must be a list of strings, got {value!r}")
    return value


def _parse_define(value: Any) -> Define:
    if isinstance(value, (list, tuple)):
        if len(value) == 1:
            return (str(value[0]), None)
        if len(value) == 2:
            return (str(value[0]), None if value[1] is None else str(value[1]))
        raise GraphDescriptionError(f"Invalid define {value!r}: expected [name] or [name, value]")
    text = str(value)
    if "=" in text:
        name, define_value = text.split("=", 1)
        return (name, define_value)
    return (text, None)


@dataclass(frozen=True)
class CompilationContext:
    """Resolved compiler inputs of a target.

    Attributes:
        includes: Include directories (-I style)
        quote_includes: Quote include directories
        system_includes: System include directories
        framework_includes: Framework include directories
        defines: Preprocessor defines as (name, value) pairs, value None for bare defines
    """

    includes: Tuple[str, ...] = ()
    quote_includes: Tuple[str, ...] = ()
    system_includes: Tuple[str, ...] = ()
    framework_includes: Tuple[str, ...] = ()
    defines: Tuple[Define, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilationContext":
        """Create a context from its JSON description.

        Directory lists keep their first-seen order and drop duplicates.
        """
        if not isinstance(data, dict):
            raise GraphDescriptionError(f"compilation_context must be a JSON object, got {data!r}")

        known = {"includes", "quote_includes", "system_includes", "framework_includes", "defines"}
        unknown = set(data) - known
        if unknown:
            raise GraphDescriptionError(f"Unknown compilation context field(s): {', '.join(sorted(unknown))}")

        defines = data.get("defines", [])
        if not isinstance(defines, list):
            raise GraphDescriptionError(f"compilation_context: 'defines' must be a list, got {defines!r}")

        return cls(
            includes=_ordered_unique(string_list(data, "includes", "compilation_context")),
            quote_includes=_ordered_unique(string_list(data, "quote_includes", "compilation_context")),
            system_includes=_ordered_unique(string_list(data, "system_includes", "compilation_context")),
            framework_includes=_ordered_unique(string_list(data, "framework_includes", "compilation_context")),
            defines=_ordered_unique(_parse_define(d) for d in defines),
        )

    def define_strings(self) -> List[str]:
        """Return defines rendered as NAME or NAME=VALUE."""
        return [name if value is None else f"{name}={value}" for name, value in self.defines]


@dataclass(frozen=True)
class BuildTarget:
    """A node of the build graph, read-only to the generator.

    Attributes:
        label: Canonical target label
        kind: Rule kind (e.g. "cc_library")
        srcs: Declared source files, workspace relative
        hdrs: Declared header files, workspace relative
        deps: Canonical labels of declared dependencies, in declaration order
        outputs: Files produced by the rule (generated sources for proto rules)
        compilation_context: Resolved compilation context, None if the target has none
        features: Features requested on the target
        disabled_features: Features disabled on the target
    """

    label: str
    kind: str
    srcs: Tuple[str, ...] = ()
    hdrs: Tuple[str, ...] = ()
    deps: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    compilation_context: Optional[CompilationContext] = None
    features: Tuple[str, ...] = ()
    disabled_features: Tuple[str, ...] = ()
    workspace_name: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        parsed = Label.parse(self.label)
        object.__setattr__(self, "label", str(parsed))
        object.__setattr__(self, "workspace_name", parsed.workspace_name)
        object.__setattr__(self, "deps", _ordered_unique(canonical_label(d) for d in self.deps))
        for name in ("srcs", "hdrs", "outputs", "features", "disabled_features"):
            object.__setattr__(self, name, tuple(str(item) for item in getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildTarget":
        """Create a target from its JSON description.

        Raises:
            GraphDescriptionError: If the entry is not an object or a field has the wrong type
        """
        if not isinstance(data, dict):
            raise GraphDescriptionError(f"Target description must be a JSON object, got {data!r}")
        try:
            label = str(data["label"])
            kind = str(data["kind"])
        except KeyError as e:
            raise GraphDescriptionError(f"Target description is missing required field {e}") from e

        where = f"target {label}"
        context_data = data.get("compilation_context")
        context = CompilationContext.from_dict(context_data) if context_data is not None else None

        return cls(
            label=label,
            kind=kind,
            srcs=tuple(string_list(data, "srcs", where)),
            hdrs=tuple(string_list(data, "hdrs", where)),
            deps=tuple(string_list(data, "deps", where)),
            outputs=tuple(string_list(data, "outputs", where)),
            compilation_context=context,
            features=tuple(string_list(data, "features", where)),
            disabled_features=tuple(string_list(data, "disabled_features", where)),
        )


class BuildGraph:
    """Read-only build graph oracle backed by a NetworkX DiGraph.

    The graph must be a DAG and every declared dependency must be a known
    target, otherwise GraphBuildError is raised at construction.
    """

    def __init__(self, targets: Iterable[BuildTarget], workspace_name: str = ""):
        self.workspace_name = workspace_name
        self._graph: "nx.DiGraph[str]" = nx.DiGraph()

        for target in targets:
            if target.label in self._graph:
                raise GraphBuildError(f"Duplicate target {target.label}")
            self._graph.add_node(target.label, target=target)

        edges = []
        for label, target in self._graph.nodes(data="target"):
            for dep in target.deps:
                if dep not in self._graph:
                    raise GraphBuildError(f"Target {label} depends on unknown target {dep}")
                edges.append((label, dep))
        self._graph.add_edges_from(edges)

        if not nx.is_directed_acyclic_graph(self._graph):
            cycle = nx.find_cycle(self._graph)
            path = " -> ".join(edge[0] for edge in cycle) + f" -> {cycle[0][0]}"
            raise GraphBuildError(f"Dependency cycle detected: {path}")

        logger.debug("Built graph with %s targets and %s edges", self._graph.number_of_nodes(), self._graph.number_of_edges())

    @property
    def graph(self) -> "nx.DiGraph[str]":
        return self._graph

    def __contains__(self, label: object) -> bool:
        return label in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def labels(self) -> List[str]:
        return list(self._graph.nodes)

    def target(self, label: str) -> BuildTarget:
        """Look up a target by (possibly non-canonical) label.

        Raises:
            TargetNotFoundError: If the label is not part of the graph
        """
        key = label if label in self._graph else canonical_label(label)
        if key not in self._graph:
            raise TargetNotFoundError(f"Target '{label}' not found in build graph")
        target: BuildTarget = self._graph.nodes[key]["target"]
        return target

    def dependencies(self, label: str) -> Tuple[str, ...]:
        """Declared dependencies of a target, in declaration order."""
        return self.target(label).deps

    def is_external(self, target: BuildTarget) -> bool:
        """True if the target belongs to a repository other than the invocation workspace."""
        return target.workspace_name not in ("", self.workspace_name)



def load_description(path: str) -> Dict[str, Any]:
    """Load a JSON build graph description.

    Raises:
        GraphDescriptionError: If the file is missing or not a JSON object
    """
    if not os.path.isfile(path):
        raise GraphDescriptionError(f"Build graph description not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise GraphDescriptionError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise GraphDescriptionError(f"Build graph description {path} must be a JSON object")

    logger.info("Loaded build graph description from %s", path)
    return data


def build_graph_from_description(data: Dict[str, Any]) -> BuildGraph:
    """Create a BuildGraph from a parsed description."""
    targets_data = data.get("targets")
    if not isinstance(targets_data, list):
        raise GraphDescriptionError("Build graph description needs a 'targets' list")

    targets = [BuildTarget.from_dict(t) for t in targets_data]
    return BuildGraph(targets, workspace_name=str(data.get("workspace", "")))
