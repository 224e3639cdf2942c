"""Simple in-memory metrics for tool latency, error rates and backend loads."""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class MetricPoint:
    """Single metric value with timestamp."""
    value: float
    timestamp: float = field(default_factory=time.time)


class MetricsCollector:
    """Collector for tool-call and backend-load metrics."""

    def __init__(self):
        self._tool_latencies: Dict[str, List[MetricPoint]] = defaultdict(list)
        self._tool_calls: Dict[str, int] = defaultdict(int)
        self._tool_errors: Dict[str, int] = defaultdict(int)
        self._backend_loads: Dict[str, int] = defaultdict(int)
        self._backend_load_failures: Dict[str, int] = defaultdict(int)
        self._backend_load_latency: Dict[str, float] = {}
        self._max_samples = 1000

    def record_tool_call(self, tool: str, latency_sec: float, error: bool = False) -> None:
        self._tool_calls[tool] += 1
        if error:
            self._tool_errors[tool] += 1
        samples = self._tool_latencies[tool]
        samples.append(MetricPoint(latency_sec))
        if len(samples) > self._max_samples:
            samples.pop(0)

    def record_backend_load(self, backend: str, latency_sec: float, error: bool = False) -> None:
        if error:
            self._backend_load_failures[backend] += 1
            return
        self._backend_loads[backend] += 1
        self._backend_load_latency[backend] = latency_sec

    def get_stats(self) -> Dict:
        """Return current metrics snapshot."""
        tools = {}
        for name, calls in self._tool_calls.items():
            latencies = [p.value for p in self._tool_latencies[name][-100:]]
            tools[name] = {
                "calls": calls,
                "errors": self._tool_errors[name],
                "error_rate": self._tool_errors[name] / calls if calls else 0,
                "latency_mean_sec": sum(latencies) / len(latencies) if latencies else 0,
                "latency_max_sec": max(latencies) if latencies else 0,
            }
        return {
            "tools": tools,
            "backends": {
                name: {
                    "loads": self._backend_loads.get(name, 0),
                    "failures": self._backend_load_failures.get(name, 0),
                    "last_load_sec": self._backend_load_latency.get(name),
                }
                for name in set(self._backend_loads) | set(self._backend_load_failures)
            },
        }

    def reset(self) -> None:
        self._tool_latencies.clear()
        self._tool_calls.clear()
        self._tool_errors.clear()
        self._backend_loads.clear()
        self._backend_load_failures.clear()
        self._backend_load_latency.clear()


_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
