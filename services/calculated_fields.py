# ------------------------------
# Module: calculated_fields.py
# Description: Named per-row fields computed from two existing columns
# ------------------------------

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from services.data_model import Row
from services.utils import to_number

logger = logging.getLogger(__name__)

class Operator(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"

@dataclass(frozen=True)
class CalculatedField:
    name: str
    operator: Operator
    left: str
    right: str
    description: str = ""

    def evaluate(self, row: Row) -> Optional[float]:
        '''
          Apply the operator to the row's operands. None for missing operands or division by zero.
        '''
        a = to_number(row.get(self.left))
        b = to_number(row.get(self.right))
        if a is None or b is None:
            return None

        if self.operator == Operator.ADD:
            return a + b
        if self.operator == Operator.SUBTRACT:
            return a - b
        if self.operator == Operator.MULTIPLY:
            return a * b
        if b == 0:
            return None
        return a / b

class CalculatedFieldRegistry:
    """
    Registry of calculated fields.

    Fields are data (operator + operand names), not code, so they can be listed
    in the UI and applied to any row set.
    """

    def __init__(self):
        self._fields: Dict[str, CalculatedField] = {}

    def register(self, name: str, operator: Operator, left: str, right: str, description: str = "") -> CalculatedField:
        calculated = CalculatedField(name=name, operator=Operator(operator), left=left, right=right,
                                     description=description or f"{left} {Operator(operator).value} {right}")
        self._fields[name] = calculated
        logger.info(f"Registered calculated field: {name}")
        return calculated

    def get_calculated_fields(self) -> Dict[str, CalculatedField]:
        return dict(self._fields)

    def is_calculated_field(self, name: str) -> bool:
        return name in self._fields

    def calculate_field(self, name: str, row: Row) -> Optional[float]:
        """
        Evaluate one field on one row.

        Raises:
            KeyError: If the field isn't registered
        """
        if name not in self._fields:
            raise KeyError(f"{name} is not a registered calculated field")
        return self._fields[name].evaluate(row)

    def apply_calculated_fields(self, rows: Iterable[Row], fields: Optional[List[str]] = None) -> List[Row]:
        '''
          Return new rows with the calculated fields added. Unknown names in `fields` are skipped.
        '''
        names = [f for f in fields if self.is_calculated_field(f)] if fields else list(self._fields)

        out = []
        for row in rows:
            new_row = dict(row)
            for name in names:
                new_row[name] = self._fields[name].evaluate(row)
            out.append(new_row)
        return out

    def initialize_default_fields(self, metric_columns: List[str]) -> None:
        '''
          Register the ratio of the first two metric columns.
        '''
        if len(metric_columns) < 2:
            logger.info("Fewer than two metric columns, no default calculated fields")
            return
        left, right = metric_columns[0], metric_columns[1]
        self.register(f"{left}_to_{right}_ratio", Operator.DIVIDE, left, right, f"Ratio of {left} to {right}")
