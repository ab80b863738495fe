# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Configuration models and layered loading."""

from __future__ import annotations

from ..errors import ConfigError
from .loader import ConfigLoader, ConfigLoadResult, load_config
from .models import (
    BinarySpec,
    CompatSettings,
    EffectiveConfig,
    NetworkSettings,
    PackageType,
    ReleaseIndexSettings,
)

__all__ = [
    "BinarySpec",
    "CompatSettings",
    "ConfigError",
    "ConfigLoadResult",
    "ConfigLoader",
    "EffectiveConfig",
    "NetworkSettings",
    "PackageType",
    "ReleaseIndexSettings",
    "load_config",
]
