"""Offline decision oracle.

Stands in for the remote model when no API key is configured: reads the
24h change line from the prompt and buys dips / trims rallies.
"""

import json
import re

_CHANGE_24H = re.compile(r"Change 24h:\s*([+-]?\d+(?:\.\d+)?)%")


class HeuristicOracle:
    """Rule-based oracle with the same chat() signature as MiniMaxClient.

    - 24h change below -5%: BUY with 50% of the balance
    - 24h change above +5%: SELL 30% of the position
    - otherwise WAIT
    """

    def __init__(self, dip_percent: float = 5.0, rally_percent: float = 5.0):
        self.dip_percent = dip_percent
        self.rally_percent = rally_percent

    async def chat(self, prompt: str, system_prompt: str = "") -> str:
        match = _CHANGE_24H.search(prompt)
        if match:
            change = float(match.group(1))
            if change < -self.dip_percent:
                return json.dumps({
                    "decision": "BUY",
                    "percentage": 0.5,
                    "reasoning": f"24h drop of {change:.1f}% exceeds {self.dip_percent}%",
                    "confidence": 70,
                })
            if change > self.rally_percent:
                return json.dumps({
                    "decision": "SELL",
                    "percentage": 0.3,
                    "reasoning": f"24h rally of {change:.1f}% exceeds {self.rally_percent}%",
                    "confidence": 65,
                })

        return json.dumps({
            "decision": "WAIT",
            "percentage": 0,
            "reasoning": "offline mode: no strong move",
            "confidence": 50,
        })
