"""Defensive parsing of oracle replies.

The oracle is asked for a JSON object
``{"decision", "percentage", "reasoning", "confidence"}`` but is free-form
text in practice: the first ``{...}`` block is extracted and coerced. Any
failure yields a WAIT decision flagged invalid, never an exception.
"""

import json
import re

from ..models import DecisionAction, OracleDecision

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def _coerce_fraction(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    # Tolerate "50" meaning 50%
    if number > 1.0:
        number = number / 100
    return min(max(number, 0.0), 1.0)


def parse_decision(text: str) -> OracleDecision:
    """Parse an oracle reply.

    Example:
        >>> parse_decision('Sure! {"decision": "BUY", "percentage": 0.25}').decision
        <DecisionAction.BUY: 'BUY'>
        >>> parse_decision("no idea").valid
        False
    """
    if not text:
        return OracleDecision(decision=DecisionAction.WAIT, reasoning="empty reply", valid=False)

    match = _JSON_BLOCK.search(text)
    candidate = match.group(0) if match else text

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return OracleDecision(
            decision=DecisionAction.WAIT, reasoning="unparseable reply", valid=False
        )

    if not isinstance(data, dict):
        return OracleDecision(
            decision=DecisionAction.WAIT, reasoning="reply is not an object", valid=False
        )

    raw_decision = str(data.get("decision", "")).strip().upper()
    if raw_decision not in (DecisionAction.BUY.value, DecisionAction.SELL.value, DecisionAction.WAIT.value):
        return OracleDecision(
            decision=DecisionAction.WAIT,
            reasoning=f"unknown decision: {raw_decision or 'missing'}",
            valid=False,
        )

    try:
        confidence = float(data.get("confidence") or 0.0)
    except (TypeError, ValueError):
        confidence = 0.0

    return OracleDecision(
        decision=DecisionAction(raw_decision),
        percentage=_coerce_fraction(data.get("percentage", 0.0)),
        reasoning=str(data.get("reasoning") or ""),
        confidence=confidence,
    )
