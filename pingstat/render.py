# pingstat/render.py
from typing import Iterable

from pingstat.core.state import MetricsRecord
from pingstat.schemas import MetricsKey

CONTENT_TYPE = "text/plain"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def render(snapshot: Iterable[tuple[MetricsKey, MetricsRecord]]) -> str:
    """
    Plain-text exposition, one group of three samples per (ip, netns) key,
    groups separated by a blank line and sorted by key. Keys with no attempts
    are left out.
    """
    out = []
    for (ip, ns), rec in sorted(snapshot, key=lambda item: item[0]):
        if not rec.total_pings:
            continue
        labels = f'{{ip="{_escape(ip)}",netns="{_escape(ns or "")}"}}'
        out.append(f"total_pings{labels} {rec.total_pings}\n")
        out.append(f"successful_pings{labels} {rec.successful_pings}\n")
        out.append(f"successful_ping_wait_sum{labels} {float(rec.cumulative_success_duration)!r}\n\n")
    return "".join(out)
