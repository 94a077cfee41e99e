"""In-process metrics collection"""

import threading
from collections import defaultdict
from typing import Dict, List, Optional


class MetricsCollector:
    """Collect counters, gauges and histograms for scheduled jobs and alerts"""

    def __init__(self, max_histogram_values: int = 1000):
        self.counters = defaultdict(float)
        self.gauges = defaultdict(float)
        self.histograms = defaultdict(list)
        self.max_histogram_values = max_histogram_values
        self._lock = threading.Lock()

    def increment_counter(self, name: str, value: float = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter"""
        with self._lock:
            self.counters[self._get_metric_key(name, tags)] += value

    def set_gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Set a gauge value"""
        with self._lock:
            self.gauges[self._get_metric_key(name, tags)] = value

    def record_histogram(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Record a histogram value"""
        with self._lock:
            key = self._get_metric_key(name, tags)
            self.histograms[key].append(value)
            if len(self.histograms[key]) > self.max_histogram_values:
                self.histograms[key] = self.histograms[key][-self.max_histogram_values:]

    def get_counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        """Get counter value"""
        with self._lock:
            return self.counters.get(self._get_metric_key(name, tags), 0)

    def get_gauge(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        """Get gauge value"""
        with self._lock:
            return self.gauges.get(self._get_metric_key(name, tags), 0)

    def get_histogram_stats(self, name: str, tags: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """Get histogram statistics"""
        with self._lock:
            values = list(self.histograms.get(self._get_metric_key(name, tags), []))
        return self._summarize(values)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format"""
        lines: List[str] = []

        with self._lock:
            counters = dict(self.counters)
            gauges = dict(self.gauges)
            histograms = {k: list(v) for k, v in self.histograms.items()}

        for key, value in counters.items():
            name, tags = self._parse_metric_key(key)
            lines.append(f"{self._prometheus_name(name)}_total{self._format_prometheus_tags(tags)} {value}")

        for key, value in gauges.items():
            name, tags = self._parse_metric_key(key)
            lines.append(f"{self._prometheus_name(name)}{self._format_prometheus_tags(tags)} {value}")

        for key, values in histograms.items():
            if not values:
                continue
            name, tags = self._parse_metric_key(key)
            tags_str = self._format_prometheus_tags(tags)
            for stat_name, stat_value in self._summarize(values).items():
                lines.append(f"{self._prometheus_name(name)}_{stat_name}{tags_str} {stat_value}")

        return '\n'.join(lines)

    def _summarize(self, values: List[float]) -> Dict[str, float]:
        if not values:
            return {}

        sorted_values = sorted(values)
        return {
            'count': len(values),
            'min': sorted_values[0],
            'max': sorted_values[-1],
            'mean': sum(values) / len(values),
            'p50': sorted_values[len(sorted_values) // 2],
            'p95': sorted_values[int(len(sorted_values) * 0.95)],
        }

    def _get_metric_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        """Generate metric key from name and tags"""
        if not tags:
            return name
        tags_str = ','.join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name},{tags_str}"

    def _parse_metric_key(self, key: str) -> tuple:
        """Parse metric key into name and tags"""
        parts = key.split(',', 1)
        tags = {}

        if len(parts) > 1:
            for tag in parts[1].split(','):
                k, v = tag.split('=', 1)
                tags[k] = v

        return parts[0], tags

    def _prometheus_name(self, name: str) -> str:
        return name.replace('.', '_')

    def _format_prometheus_tags(self, tags: Dict[str, str]) -> str:
        """Format tags for Prometheus"""
        if not tags:
            return ""
        tags_str = ','.join(f'{k}="{v}"' for k, v in sorted(tags.items()))
        return f"{{{tags_str}}}"
