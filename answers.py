from __future__ import annotations

import re
from typing import Any, Optional

from sympy import nan, nsimplify, oo, zoo
from sympy.parsing.sympy_parser import parse_expr, standard_transformations

# --- Parsing / validation helpers ------------------------------------------------
LEN_LIMIT = 20
_EMPTY_MSG = "Type a number first."
_TOO_LONG_MSG = f"That answer is too long (> {LEN_LIMIT})."
_INVALID_CHARS_MSG = "Only numbers are allowed here."
_NOT_WHOLE_MSG = "The answer is a whole number. Try again!"
_NON_FINITE_MSG = "That is not a number we can use (e.g., division by zero)."
# No powers: "**" is rejected below so a short answer can never blow up
_ALLOWED_RE = re.compile(r"^[0-9+\-*/().\s]+$")
# Two numbers side by side ("2 3", "2(3)", "(2)(3)") are not one number
_ADJACENT_RE = re.compile(r"[\d.)]\s*\(|\)\s*[\d.]|[\d.]\s+[\d.]")

# No implicit multiplication: juxtaposed numbers must not be read as a product
TRANSFORMS = standard_transformations


def _validate_answer_text(s: Any) -> Optional[str]:
    if s is None or not isinstance(s, str) or not s.strip():
        return _EMPTY_MSG
    if len(s) > LEN_LIMIT:
        return _TOO_LONG_MSG
    if _ALLOWED_RE.fullmatch(s) is None or "**" in s:
        return _INVALID_CHARS_MSG
    if _ADJACENT_RE.search(s.strip()):
        return _INVALID_CHARS_MSG
    return None


def _assert_finite_sym(val: Any) -> None:
    finite = getattr(val, "is_finite", None)
    if finite is False:
        raise ValueError(_NON_FINITE_MSG)
    if val in (oo, -oo, zoo, nan):
        raise ValueError(_NON_FINITE_MSG)


def parse_whole_number(text: Any) -> int:
    """
    Read a learner's typed answer as a whole number.

    Accepts anything the grading parser evaluates to a finite integer
    ("8", " 8 ", "8.0", "16/2"). Raises ValueError carrying a short,
    learner-facing message otherwise.
    """
    msg = _validate_answer_text(text)
    if msg:
        raise ValueError(msg)

    s = text.strip()
    # Fast path: plain integer literal without going through sympy.
    if re.fullmatch(r"[+-]?\d+", s):
        return int(s)

    try:
        sym = parse_expr(s, transformations=TRANSFORMS, evaluate=True)
    except Exception:
        raise ValueError(_INVALID_CHARS_MSG)
    _assert_finite_sym(sym)
    try:
        val = nsimplify(sym)
    except Exception:
        raise ValueError(_NOT_WHOLE_MSG)

    if not getattr(val, "is_Integer", False):
        raise ValueError(_NOT_WHOLE_MSG)
    return int(val)
