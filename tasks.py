"""Task parsing and evaluation for the TEXT TCP arithmetic protocol."""

import enum
import operator
import re
from typing import NamedTuple

ERROR = "ERROR"

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1

# Smallest divisor magnitude accepted by fdiv
FDIV_EPSILON = 0.0001

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)", re.ASCII)
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:inf(?:inity)?|nan)|[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.ASCII | re.IGNORECASE,
)


# ======================================================
# Numeric domains
# ======================================================

class Domain(enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"

    @classmethod
    def for_operator(cls, name: str) -> "Domain":
        """Any operator name starting with 'f' is evaluated as floating point."""
        return cls.FLOAT if name.startswith("f") else cls.INTEGER


class Task(NamedTuple):
    operator: str
    operand1: str
    operand2: str

    @property
    def domain(self) -> Domain:
        return Domain.for_operator(self.operator)


def parse_task(line: str) -> Task:
    """Split a task line into operator and operands; missing tokens become ''."""
    toks = line.split()[:3]
    toks += [""] * (3 - len(toks))
    return Task(*toks)


# ======================================================
# Permissive operand parsing
# ======================================================

def parse_int(text: str) -> int:
    """
    Parse the longest integer prefix of text, like C's atoi().
    Leading whitespace and a sign are accepted; anything after the digits is
    ignored. Text with no digit prefix parses to 0. The value saturates at the
    32-bit signed range.
    """
    m = _INT_PREFIX.match(text)
    if not m:
        return 0
    return max(INT_MIN, min(INT_MAX, int(m.group(1))))


def parse_float(text: str) -> float:
    """
    Parse the longest floating-point prefix of text, like C's atof().
    Recognises decimal notation with an optional exponent as well as
    inf/infinity/nan. Text with no valid prefix parses to 0.0.
    """
    m = _FLOAT_PREFIX.match(text)
    if not m:
        return 0.0
    return float(m.group(1))


# ======================================================
# Evaluation
# ======================================================

_OPERATIONS = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "div": operator.truediv,
    "fadd": operator.add,
    "fsub": operator.sub,
    "fmul": operator.mul,
    "fdiv": operator.truediv,
}


def _divisor_rejected(name: str, b: float) -> bool:
    if name == "div":
        return b == 0
    if name == "fdiv":
        return abs(b) < FDIV_EPSILON
    return False


def format_result(domain: Domain, value: float) -> str:
    """Render a computed value: truncated integer or 8 significant digits."""
    if domain is Domain.INTEGER:
        return f"{int(value)}\n"
    return "%.8g\n" % value


def compute(op_name: str, operand1_text: str, operand2_text: str) -> float | None:
    """Unformatted result of a task, or None where the result line is ERROR."""
    if Domain.for_operator(op_name) is Domain.FLOAT:
        a, b = parse_float(operand1_text), parse_float(operand2_text)
    else:
        a, b = float(parse_int(operand1_text)), float(parse_int(operand2_text))

    fn = _OPERATIONS.get(op_name)
    if fn is None or _divisor_rejected(op_name, b):
        return None
    return fn(a, b)


def evaluate(op_name: str, operand1_text: str, operand2_text: str) -> str:
    """
    Evaluate one task and return the newline-terminated result line.

    Integer operators parse their operands as integers but compute in floating
    point and truncate toward zero. Division by zero (div), by a divisor below
    0.0001 in magnitude (fdiv), and unknown operators all produce "ERROR".
    Never raises.
    """
    value = compute(op_name, operand1_text, operand2_text)
    if value is None:
        return ERROR + "\n"
    return format_result(Domain.for_operator(op_name), value)


def evaluate_task(task: Task) -> str:
    return evaluate(task.operator, task.operand1, task.operand2)
