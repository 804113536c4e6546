"""Task generators for the reference task server."""

import random

INTEGER_OPERATORS = ["add", "sub", "mul", "div"]
FLOAT_OPERATORS = ["fadd", "fsub", "fmul", "fdiv"]
OPERATORS = INTEGER_OPERATORS + FLOAT_OPERATORS


# --------------------------------------------------
# Operand generators
# --------------------------------------------------
def _integer_operand() -> str:
    return str(random.randint(-200, 200))


def _float_operand() -> str:
    """Decimal with 1–4 fractional digits, e.g. '-12.375'."""
    digits = random.randint(1, 4)
    return f"{random.uniform(-200.0, 200.0):.{digits}f}"


def generate_operands(op: str) -> tuple[str, str]:
    """
    Return two operand strings for op.
    Divisions occasionally get a divisor the client must reject, so the
    ERROR path is exercised as well.
    """
    if op.startswith("f"):
        a, b = _float_operand(), _float_operand()
        if op == "fdiv" and random.random() < 0.1:
            b = "0.00005"
        return a, b
    a, b = _integer_operand(), _integer_operand()
    if op == "div" and random.random() < 0.1:
        b = "0"
    return a, b


# --------------------------------------------------
# Task line generator
# --------------------------------------------------
def generate_task(operators: list[str] | None = None) -> str:
    """Return a task line like 'fmul 2.5 -3.25\\n'."""
    op = random.choice(operators or OPERATORS)
    a, b = generate_operands(op)
    return f"{op} {a} {b}\n"
