# Area: Pipeline
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._pipeline.stat_schema — Subpack column schemas
================================================================

Each gamepack declares, per subpack, the summary columns it writes and
their types. The write pipeline validates every stat map against it
before touching the store.

Config shape:

    "packs": {
        "league": {
            "subpacks": {
                "0": {"columns": {"kills": "integer", "champion": "text"}}
            }
        }
    }
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..errors import ConfigError, InvalidStatValue, UnknownColumn, UnknownSubpack


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_json(value: Any) -> bool:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return False
    return True


# ══════════════════════════════════════════════════════════════
# COLUMN TYPES
# ══════════════════════════════════════════════════════════════

COLUMN_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "integer": _is_integer,
    "real": _is_real,
    "text": lambda value: isinstance(value, str),
    "boolean": lambda value: isinstance(value, bool),
    "json": _is_json,
}


@dataclass(frozen=True)
class SubpackSchema:
    """
    Declared summary columns of one subpack.

    Attributes:
        index: Subpack index
        columns: Column name -> column type (see COLUMN_TYPE_CHECKS)
    """

    index: int
    columns: Dict[str, str]

    def validate(self, external_match_id: str, values: Dict[str, Any]) -> None:
        """
        Check stat keys and value types. None is accepted for any column.

        Raises:
            UnknownColumn: If keys are not declared
            InvalidStatValue: If a value does not match its column type
        """
        unknown: List[str] = [name for name in values if name not in self.columns]
        if unknown:
            raise UnknownColumn(self.index, external_match_id, unknown)
        for name, value in values.items():
            if value is None:
                continue
            column_type = self.columns[name]
            if not COLUMN_TYPE_CHECKS[column_type](value):
                raise InvalidStatValue(
                    self.index, external_match_id, name, column_type, value
                )


class SchemaRegistry:
    """Column schemas of every subpack of one gamepack."""

    def __init__(self, pack_id: str, subpacks: Dict[int, SubpackSchema]):
        self.pack_id = pack_id
        self._subpacks = dict(subpacks)

    @classmethod
    def from_config(cls, pack_id: str, pack_config: Dict[str, Any]) -> "SchemaRegistry":
        """
        Build the registry from a pack's config section.

        Raises:
            ConfigError: If a subpack index or column type is invalid
        """
        subpacks: Dict[int, SubpackSchema] = {}
        for raw_index, subpack_config in (pack_config.get("subpacks") or {}).items():
            try:
                index = int(raw_index)
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Pack '{pack_id}': subpack index must be an integer, got {raw_index!r}"
                ) from None
            if not 0 <= index <= 255:
                raise ConfigError(f"Pack '{pack_id}': subpack index {index} out of range")

            columns = dict((subpack_config or {}).get("columns") or {})
            bad = {name: t for name, t in columns.items() if t not in COLUMN_TYPE_CHECKS}
            if bad:
                raise ConfigError(
                    f"Pack '{pack_id}' subpack {index}: unknown column types {bad}"
                )
            subpacks[index] = SubpackSchema(index=index, columns=columns)
        return cls(pack_id, subpacks)

    @property
    def subpack_indexes(self) -> List[int]:
        return sorted(self._subpacks)

    def get(self, subpack: int, external_match_id: str = "") -> SubpackSchema:
        schema = self._subpacks.get(subpack)
        if schema is None:
            raise UnknownSubpack(subpack, external_match_id, self.pack_id)
        return schema

    def validate_stats(
        self, subpack: int, external_match_id: str, values: Dict[str, Any]
    ) -> None:
        """Validate a stat map against the subpack schema."""
        self.get(subpack, external_match_id).validate(external_match_id, values)
