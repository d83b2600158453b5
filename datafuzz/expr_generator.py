"""
Type-directed random expression generation
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from sqlglot import exp

from .context import GlobalContext
from .expr_catalog import ExprWrapper, exprs_returning
from .models import LogicalColumn, LogicalTable
from .rng import choose, random_bool
from .types import FuzzerDataType
from .value_generator import ValueGenerationConfig, generate_value

logger = logging.getLogger(__name__)

DATA_TYPE_META = "data_type"


@dataclass(frozen=True)
class SourceColumn:
    """A column reference qualified by the table (or alias) it comes from"""
    table: str
    column: LogicalColumn

    @property
    def data_type(self) -> FuzzerDataType:
        return self.column.data_type

    def to_expr(self) -> exp.Column:
        return exp.column(self.column.name, table=self.table)


def tables_to_columns(tables: Sequence[LogicalTable]) -> List[SourceColumn]:
    return [SourceColumn(table.name, column) for table in tables for column in table.columns]


def declared_type(node: exp.Expression) -> Optional[FuzzerDataType]:
    """Type the generator meant ``node`` to have"""
    return node.meta.get(DATA_TYPE_META)


class ExprGenerator:
    """
    Build random expressions of a requested type.

    At each level the generator stops with probability 0.5 (or always at
    ``max_level``) and emits a leaf: a column of the requested type when one
    exists and a coin flip says so, a literal otherwise. Otherwise it picks an
    operator able to return the type and recurses into its children.
    Child combinations are never re-checked; expressions the engine rejects
    are useful test input.
    """

    def __init__(self, ctx: GlobalContext, rng: np.random.Generator,
                 src_columns: Optional[Sequence[SourceColumn]] = None,
                 max_level: Optional[int] = None,
                 value_config: Optional[ValueGenerationConfig] = None):
        self.ctx = ctx
        self.rng = rng
        self.src_columns = list(src_columns or [])
        self.max_level = ctx.runner_config.max_expr_level if max_level is None else max_level
        self.value_config = value_config or ValueGenerationConfig()

    def generate_random_expr(self, target_type: FuzzerDataType, cur_level: int = 0) -> exp.Expression:
        if cur_level >= self.max_level or random_bool(self.rng, 0.5):
            return self.generate_leaf_expr(target_type)

        wrapper = self._pick_expr_with_return_type(target_type)
        if wrapper is None:
            return self.generate_leaf_expr(target_type)

        child_types = wrapper.pick_child_signature(target_type, self.rng)
        children = [self.generate_random_expr(t, cur_level + 1) for t in child_types]
        return _typed(wrapper.build_expr(children), target_type)

    def generate_leaf_expr(self, target_type: FuzzerDataType) -> exp.Expression:
        columns = self.columns_of_type(target_type)
        if columns and random_bool(self.rng, 0.5):
            return _typed(choose(self.rng, columns).to_expr(), target_type)

        value = generate_value(self.rng, target_type, self.value_config)
        return _typed(value.to_sql_expr(), target_type)

    def columns_of_type(self, target_type: FuzzerDataType) -> List[SourceColumn]:
        return [c for c in self.src_columns if c.data_type == target_type]

    def _pick_expr_with_return_type(self, target_type: FuzzerDataType) -> Optional[ExprWrapper]:
        candidates = exprs_returning(target_type)
        if not candidates:
            return None
        return choose(self.rng, candidates)


def _typed(node: exp.Expression, data_type: FuzzerDataType) -> exp.Expression:
    node.meta[DATA_TYPE_META] = data_type
    return node
