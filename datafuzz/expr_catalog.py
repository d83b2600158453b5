"""
Operator catalog for expression generation

Every ``ExprWrapper`` describes one operator: the kinds of types it can
return and the child type signatures it accepts. A signature is a list of
type groups, resolved against the requested output type by ``resolve``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Sequence, Tuple, Union

import numpy as np
from sqlglot import exp

from .errors import GenerationError
from .rng import choose
from .types import (
    FLOAT64,
    INT64,
    INTERVAL_MONTH_DAY_NANO,
    NUMERIC_KINDS,
    FuzzerDataType,
    TypeKind,
    available_data_types,
)


@dataclass(frozen=True)
class SameAsOutput:
    """Child has the expression's output type"""


@dataclass(frozen=True)
class Fixed:
    data_type: FuzzerDataType


@dataclass(frozen=True)
class OneOf:
    data_types: Tuple[FuzzerDataType, ...]

    def __post_init__(self):
        if not self.data_types:
            raise ValueError("OneOf needs at least one type")


TypeGroup = Union[SameAsOutput, Fixed, OneOf]


def resolve(group: TypeGroup, output_type: FuzzerDataType, rng: np.random.Generator) -> FuzzerDataType:
    """Concrete child type for one type group"""
    if isinstance(group, SameAsOutput):
        return output_type
    if isinstance(group, Fixed):
        return group.data_type
    if isinstance(group, OneOf):
        return choose(rng, group.data_types)
    raise TypeError(f"Unknown type group: {group!r}")


def _binary(node_cls) -> Callable[[Sequence[exp.Expression]], exp.Expression]:
    def build(children):
        left, right = children
        return exp.paren(node_cls(this=left, expression=right), copy=False)
    return build


def _not(children):
    return exp.paren(exp.Not(this=exp.paren(children[0], copy=False)), copy=False)


def _negate(children):
    # "-(x)" so a negative child can never turn into a "--" comment
    return exp.paren(exp.Neg(this=exp.paren(children[0], copy=False)), copy=False)


class Operator(Enum):
    """Operators the generator can emit: (symbol, arity)"""
    ADD = ("+", 2)
    SUB = ("-", 2)
    MUL = ("*", 2)
    DIV = ("/", 2)
    MOD = ("%", 2)
    AND = ("AND", 2)
    OR = ("OR", 2)
    EQ = ("=", 2)
    NEQ = ("<>", 2)
    LT = ("<", 2)
    LTE = ("<=", 2)
    GT = (">", 2)
    GTE = (">=", 2)
    NOT = ("NOT", 1)
    NEGATE = ("-", 1)

    def __init__(self, symbol: str, arity: int):
        self.symbol = symbol
        self.arity = arity


_BUILDERS: Dict[Operator, Callable[[Sequence[exp.Expression]], exp.Expression]] = {
    Operator.ADD: _binary(exp.Add),
    Operator.SUB: _binary(exp.Sub),
    Operator.MUL: _binary(exp.Mul),
    Operator.DIV: _binary(exp.Div),
    Operator.MOD: _binary(exp.Mod),
    Operator.AND: _binary(exp.And),
    Operator.OR: _binary(exp.Or),
    Operator.EQ: _binary(exp.EQ),
    Operator.NEQ: _binary(exp.NEQ),
    Operator.LT: _binary(exp.LT),
    Operator.LTE: _binary(exp.LTE),
    Operator.GT: _binary(exp.GT),
    Operator.GTE: _binary(exp.GTE),
    Operator.NOT: _not,
    Operator.NEGATE: _negate,
}


@dataclass(frozen=True)
class ExprWrapper:
    """
    Catalog entry for one operator.

    Attributes:
        operator: The operator
        return_kinds: Type kinds the operator can produce
        signatures: Possible child type signatures
    """
    operator: Operator
    return_kinds: FrozenSet[TypeKind]
    signatures: Tuple[Tuple[TypeGroup, ...], ...]

    def __post_init__(self):
        if not self.signatures:
            raise ValueError(f"Operator {self.operator.name} has no child signature")
        for signature in self.signatures:
            if len(signature) != self.operator.arity:
                raise ValueError(
                    f"Signature {signature} of {self.operator.name} does not match "
                    f"arity {self.operator.arity}"
                )

    @property
    def arity(self) -> int:
        return self.operator.arity

    def can_return(self, data_type: FuzzerDataType) -> bool:
        return data_type.kind in self.return_kinds

    def pick_child_signature(self, output_type: FuzzerDataType,
                             rng: np.random.Generator) -> List[FuzzerDataType]:
        """
        Pick one signature and resolve it, e.g. for a Float64 ``+``:
        [SameAsOutput, SameAsOutput] -> [Float64, Float64]
        """
        signature = choose(rng, self.signatures)
        return [resolve(group, output_type, rng) for group in signature]

    def build_expr(self, children: Sequence[exp.Expression]) -> exp.Expression:
        if len(children) != self.arity:
            raise GenerationError(
                f"{self.operator.name} takes {self.arity} children, got {len(children)}"
            )
        return _BUILDERS[self.operator](children)


SAME_SAME = (SameAsOutput(), SameAsOutput())
TEMPORAL_ARITHMETIC_KINDS = frozenset({
    TypeKind.DATE32,
    TypeKind.TIMESTAMP,
    TypeKind.INTERVAL_MONTH_DAY_NANO,
})


def _build_catalog() -> Tuple[ExprWrapper, ...]:
    # only temporal outputs may take an interval operand
    with_interval = (SameAsOutput(), Fixed(INTERVAL_MONTH_DAY_NANO))
    comparison_signatures = tuple((Fixed(t), Fixed(t)) for t in available_data_types())
    boolean = frozenset({TypeKind.BOOLEAN})

    catalog = [
        ExprWrapper(Operator.ADD, NUMERIC_KINDS, (SAME_SAME,)),
        ExprWrapper(Operator.SUB, NUMERIC_KINDS, (SAME_SAME,)),
        ExprWrapper(Operator.ADD, TEMPORAL_ARITHMETIC_KINDS, (SAME_SAME, with_interval)),
        ExprWrapper(Operator.SUB, TEMPORAL_ARITHMETIC_KINDS, (SAME_SAME, with_interval)),
        ExprWrapper(Operator.MUL, NUMERIC_KINDS,
                    (SAME_SAME, (SameAsOutput(), OneOf((INT64, FLOAT64))))),
        ExprWrapper(Operator.DIV, NUMERIC_KINDS, (SAME_SAME,)),
        ExprWrapper(Operator.MOD, NUMERIC_KINDS, (SAME_SAME,)),
        ExprWrapper(Operator.AND, boolean, (SAME_SAME,)),
        ExprWrapper(Operator.OR, boolean, (SAME_SAME,)),
    ]
    for operator in (Operator.EQ, Operator.NEQ, Operator.LT, Operator.LTE, Operator.GT, Operator.GTE):
        catalog.append(ExprWrapper(operator, boolean, comparison_signatures))
    catalog.append(ExprWrapper(Operator.NOT, boolean, ((SameAsOutput(),),)))
    catalog.append(ExprWrapper(Operator.NEGATE, NUMERIC_KINDS, ((SameAsOutput(),),)))
    return tuple(catalog)


ALL_EXPRS = _build_catalog()


def all_available_exprs() -> Tuple[ExprWrapper, ...]:
    return ALL_EXPRS


def exprs_returning(data_type: FuzzerDataType) -> List[ExprWrapper]:
    return [wrapper for wrapper in ALL_EXPRS if wrapper.can_return(data_type)]
