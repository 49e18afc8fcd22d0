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
"""C/C++ toolchain oracle: feature configuration, tools and flag generation.

The toolchain decides which compile actions are enabled for a feature
configuration, which executable implements an action, and how compile
variables (user flags, include directories, defines, the source file) are
materialized into command line flags. The generator only selects and orders
the variable groups; flag syntax is owned by the toolchain's flag templates.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple
from dataclasses import dataclass

from compdb.constants import (
    COMPILE_ACTION_NAMES,
    COMPILER_INPUT_FEATURE,
    COMPILER_INPUT_FLAGS,
    CONTEXT_FLAG_GROUPS,
    DEFAULT_FLAG_TEMPLATES,
    GraphDescriptionError,
    ToolchainError,
)
from compdb.build_graph import string_list

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Feature:
    """A toolchain feature injecting flags into some actions.

    Attributes:
        name: Feature name (e.g. "pic", "asan")
        flags: Flags added when enabled, "{source_file}" is substituted
        actions: Actions the flags apply to
        enabled: Whether the feature is enabled without being requested
    """

    name: str
    flags: Tuple[str, ...] = ()
    actions: Tuple[str, ...] = COMPILE_ACTION_NAMES
    enabled: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Feature":
        if isinstance(data, str):
            return cls(name=data)
        if not isinstance(data, dict):
            raise GraphDescriptionError(f"Toolchain feature must be a name or a JSON object, got {data!r}")
        if "name" not in data:
            raise GraphDescriptionError(f"Toolchain feature {data!r} has no name")
        where = f"toolchain feature {data['name']}"
        return cls(
            name=str(data["name"]),
            flags=tuple(string_list(data, "flags", where)),
            actions=tuple(string_list(data, "actions", where)) if "actions" in data else COMPILE_ACTION_NAMES,
            enabled=bool(data.get("enabled", False)),
        )


@dataclass(frozen=True)
class FeatureConfiguration:
    """Features and actions enabled for one configuration request."""

    enabled_features: FrozenSet[str]
    enabled_actions: FrozenSet[str]

    def is_enabled(self, feature_name: str) -> bool:
        return feature_name in self.enabled_features


@dataclass(frozen=True)
class CompileVariables:
    """Variables a compile command line is materialized from."""

    source_file: str
    user_compile_flags: Tuple[str, ...] = ()
    includes: Tuple[str, ...] = ()
    quote_includes: Tuple[str, ...] = ()
    system_includes: Tuple[str, ...] = ()
    framework_includes: Tuple[str, ...] = ()
    defines: Tuple[str, ...] = ()


def _expand_template(template: str, value: str) -> List[str]:
    """Expand a flag template into one or more arguments."""
    return [token.replace("{}", value) for token in template.split()]


class CcToolchain:
    """Toolchain configuration queried per target and per action.

    Args:
        tools: Mapping of action name to executable path
        actions: Actions enabled unless disabled on a target (default: all compile actions)
        features: Toolchain features in flag emission order
        flag_templates: Overrides for the compilation context flag templates
        copts: User compile flags applied to every compile
        cxxopts: User C++ flags, emitted before copts
    """

    def __init__(
        self,
        tools: Mapping[str, str],
        actions: Optional[Iterable[str]] = None,
        features: Iterable[Feature] = (),
        flag_templates: Optional[Mapping[str, str]] = None,
        copts: Sequence[str] = (),
        cxxopts: Sequence[str] = (),
    ):
        self.tools: Dict[str, str] = dict(tools)
        self.default_actions: FrozenSet[str] = frozenset(COMPILE_ACTION_NAMES if actions is None else actions)
        self.copts: Tuple[str, ...] = tuple(copts)
        self.cxxopts: Tuple[str, ...] = tuple(cxxopts)

        declared = list(features)
        if not any(f.name == COMPILER_INPUT_FEATURE for f in declared):
            declared.append(Feature(name=COMPILER_INPUT_FEATURE, flags=COMPILER_INPUT_FLAGS, enabled=True))
        self.features: Tuple[Feature, ...] = tuple(declared)

        self.flag_templates: Dict[str, str] = dict(DEFAULT_FLAG_TEMPLATES)
        for group, template in (flag_templates or {}).items():
            if group not in DEFAULT_FLAG_TEMPLATES:
                raise ToolchainError(f"Unknown flag template group '{group}'")
            if "{}" not in template:
                raise ToolchainError(f"Flag template for '{group}' must contain '{{}}': {template!r}")
            self.flag_templates[group] = template

    @property
    def known_actions(self) -> FrozenSet[str]:
        return self.default_actions | frozenset(self.tools)

    def configure_features(self, requested_features: Iterable[str] = (), unsupported_features: Iterable[str] = ()) -> FeatureConfiguration:
        """Resolve the enabled features and actions for a request.

        Action names can be requested or disabled like features, so a target
        disabling "c++-compile" falls back to the C compile action.
        """
        requested = set(requested_features)
        unsupported = set(unsupported_features)

        feature_names = {f.name for f in self.features}
        enabled_features = {f.name for f in self.features if f.enabled} | (requested & feature_names)
        enabled_actions = set(self.default_actions) | (requested & self.known_actions)

        return FeatureConfiguration(
            enabled_features=frozenset(enabled_features - unsupported),
            enabled_actions=frozenset(enabled_actions - unsupported),
        )

    def action_is_enabled(self, feature_configuration: FeatureConfiguration, action_name: str) -> bool:
        return action_name in feature_configuration.enabled_actions

    def get_tool_for_action(self, feature_configuration: FeatureConfiguration, action_name: str) -> str:
        """Return the executable for an enabled action.

        Raises:
            ToolchainError: If the action is disabled or has no tool
        """
        if not self.action_is_enabled(feature_configuration, action_name):
            raise ToolchainError(f"Action '{action_name}' is not enabled")
        tool = self.tools.get(action_name)
        if not tool:
            raise ToolchainError(f"Toolchain has no tool for action '{action_name}'")
        return tool

    def create_compile_variables(
        self,
        source_file: str,
        user_compile_flags: Sequence[str] = (),
        include_directories: Sequence[str] = (),
        quote_include_directories: Sequence[str] = (),
        system_include_directories: Sequence[str] = (),
        framework_include_directories: Sequence[str] = (),
        preprocessor_defines: Sequence[str] = (),
    ) -> CompileVariables:
        return CompileVariables(
            source_file=source_file,
            user_compile_flags=tuple(user_compile_flags),
            includes=tuple(include_directories),
            quote_includes=tuple(quote_include_directories),
            system_includes=tuple(system_include_directories),
            framework_includes=tuple(framework_include_directories),
            defines=tuple(preprocessor_defines),
        )

    def get_command_line(self, feature_configuration: FeatureConfiguration, action_name: str, variables: CompileVariables) -> List[str]:
        """Materialize the flags of an action (without the executable).

        Order: user flags, compilation context groups, then flags of enabled
        features in toolchain declaration order.
        """
        flags = list(variables.user_compile_flags)

        for group in CONTEXT_FLAG_GROUPS:
            template = self.flag_templates[group]
            for value in getattr(variables, group):
                flags.extend(_expand_template(template, value))

        for feature in self.features:
            if feature_configuration.is_enabled(feature.name) and action_name in feature.actions:
                flags.extend(flag.replace("{source_file}", variables.source_file) for flag in feature.flags)

        return flags


def toolchain_from_description(data: Dict[str, Any], copts: Sequence[str] = (), cxxopts: Sequence[str] = ()) -> CcToolchain:
    """Create a CcToolchain from the "toolchain" section of a build graph description.

    Extra copts/cxxopts (e.g. from the command line) are appended to the ones
    declared in the description.
    """
    section = data.get("toolchain", {})
    if not isinstance(section, dict):
        raise GraphDescriptionError("'toolchain' must be a JSON object")

    tools = section.get("tools", {})
    if not isinstance(tools, dict):
        raise GraphDescriptionError("'toolchain.tools' must map action names to executables")

    actions = string_list(section, "actions", "toolchain") if "actions" in section else None
    features = section.get("features", [])
    if not isinstance(features, list):
        raise GraphDescriptionError(f"toolchain: 'features' must be a list, got {features!r}")
    toolchain = CcToolchain(
        tools={str(k): str(v) for k, v in tools.items()},
        actions=actions,
        features=[Feature.from_dict(f) for f in features],
        flag_templates=section.get("flag_templates"),
        copts=string_list(section, "copts", "toolchain") + list(copts),
        cxxopts=string_list(section, "cxxopts", "toolchain") + list(cxxopts),
    )
    logger.debug("Toolchain tools: %s", toolchain.tools)
    return toolchain
