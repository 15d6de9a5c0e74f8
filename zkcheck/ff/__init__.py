"""Finite-field values and expression trees over circuit cells."""
from .field import Field
from .ff_ast import (
    Cell,
    Column,
    ColumnKind,
    FieldAdd,
    FieldCell,
    FieldConst,
    FieldExpr,
    FieldMul,
    FieldNeg,
    FieldQuery,
    add,
    cell_ref,
    cells_of,
    constant,
    degree,
    evaluate,
    instantiate,
    multiply,
    negate,
    queries_of,
    query,
    scale,
    sub,
    substitute,
    walk,
)
