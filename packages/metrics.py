"""Process-local counters and timings, rendered in Prometheus text format at /metrics."""
import threading
from collections import Counter


_lock = threading.Lock()
_counters: Counter = Counter()
_totals: dict[str, float] = {}
_counts: Counter = Counter()


def labelled(name: str, **labels: str) -> str:
    """Series name with labels, e.g. ``import_records_total{stage="raw"}``."""
    if not labels:
        return name
    body = ",".join(f'{key}="{value}"' for key, value in sorted(labels.items()))
    return f"{name}{{{body}}}"


def inc(name: str, value: int = 1) -> None:
    with _lock:
        _counters[name] += value


def observe(name: str, seconds: float) -> None:
    with _lock:
        _totals[name] = _totals.get(name, 0.0) + seconds
        _counts[name] += 1


def snapshot() -> tuple[dict, dict]:
    """Counters, and per timing a ``(sum, count)`` pair."""
    with _lock:
        return dict(_counters), {name: (total, _counts[name]) for name, total in _totals.items()}


def reset() -> None:
    with _lock:
        _counters.clear()
        _totals.clear()
        _counts.clear()


def render_text() -> str:
    counters, timings = snapshot()
    lines = [f"{name} {value}" for name, value in sorted(counters.items())]
    for name, (total, count) in sorted(timings.items()):
        lines.append(f"{name}_sum {total:.6f}")
        lines.append(f"{name}_count {count}")
    return "\n".join(lines) + "\n"
