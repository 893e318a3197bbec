"""State manager: latest metric values, recent history, alert states and snapshots.

The manager keeps the newest value of every metric and a ring buffer of
recent values per metric. Alert on/off states are tracked here as well.
When a key-value store is supplied, the latest values are saved to it
periodically and the newest saved snapshot is restored on start-up.
Without a store the manager works purely in memory.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from healthmon.state_types import (
    BusinessMetric,
    ContainerMetric,
    Metric,
    MetricType,
    NodeMetric,
    ServiceMetric,
    StateSnapshot,
)

logger = logging.getLogger(__name__)

HISTORY_RETENTION = timedelta(minutes=10)
RING_BUFFER_SIZE = 600
SNAPSHOT_INTERVAL = 60.0
SNAPSHOT_PREFIX = "/health-monitor/snapshots/"
HISTORY_PREFIX = "/health-monitor/history/"


class StateError(Exception):
    """A state operation could not be carried out."""


@dataclass
class HistoryEntry:
    """One recorded value of a metric."""

    timestamp: int
    data: Any


def _seconds(duration: timedelta | float) -> int:
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    return int(duration)


def _format_duration(duration: timedelta) -> str:
    total = int(duration.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


class RingBuffer:
    """Fixed-size history buffer; holds at most ``size - 1`` entries.

    When full, appending drops the oldest entry.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("ring buffer size must be positive")
        self.size = size
        self._entries: deque[HistoryEntry] = deque(maxlen=size - 1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, entry: HistoryEntry) -> None:
        """Add an entry, evicting the oldest one when full."""
        with self._lock:
            self._entries.append(entry)

    def query(self, since: timedelta | float) -> list[HistoryEntry]:
        """Entries no older than ``since`` (a timedelta or seconds), oldest first."""
        cutoff = int(time.time()) - _seconds(since)
        with self._lock:
            return [e for e in self._entries if e.timestamp >= cutoff]


class KeyValueStore(ABC):
    """Persistent string key-value store used for snapshots."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def get_prefix(self, prefix: str) -> list[tuple[str, str]]:
        """All ``(key, value)`` pairs whose key starts with ``prefix``, sorted by key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def close(self) -> None:
        """Release the store."""


class MemoryStore(KeyValueStore):
    """Thread-safe in-process store; useful for tests and single processes."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StateError("store is closed")

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._check_open()
            self._data[key] = value

    def get_prefix(self, prefix: str) -> list[tuple[str, str]]:
        with self._lock:
            self._check_open()
            return sorted(
                (k, v) for k, v in self._data.items() if k.startswith(prefix)
            )

    def delete(self, key: str) -> None:
        with self._lock:
            self._check_open()
            self._data.pop(key, None)

    def close(self) -> None:
        with self._lock:
            self._closed = True


def _type_value(metric_type: MetricType | str) -> str:
    return MetricType(metric_type).value


class StateManager:
    """Central store of live metric state, history and alert states."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        snapshot_interval: float = SNAPSHOT_INTERVAL,
    ) -> None:
        self._latest: dict[str, Metric] = {}
        self._states_lock = threading.RLock()
        self._history: dict[str, RingBuffer] = {}
        self._history_lock = threading.Lock()
        self._alerts: dict[str, bool] = {}
        self._alert_lock = threading.Lock()
        self.time_base = int(time.time())
        self._store = store
        self._snapshot_interval = snapshot_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

        if store is not None:
            try:
                self.load_snapshot()
            except StateError as exc:
                logger.info("no snapshot restored (possibly first start): %s", exc)
            self._thread = threading.Thread(target=self._persist_loop, daemon=True)
            self._thread.start()
        else:
            logger.info("in-memory mode: no store configured, state is not persisted")

    def __enter__(self) -> StateManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---------------------------------------------------------- metrics

    def update_metric(self, metric: Metric | None) -> None:
        """Record a metric as the latest value and append it to history."""
        if metric is None:
            raise StateError("metric must not be None")
        aligned = self.align_timestamp(metric)
        with self._states_lock:
            self._latest[aligned.key()] = aligned
        self.append_history(aligned)

    def get_latest_state(
        self, metric_type: MetricType | str, metric_id: str
    ) -> Metric | None:
        """Latest metric of the given type and id, or ``None``."""
        key = f"{_type_value(metric_type)}:{metric_id}"
        with self._states_lock:
            return self._latest.get(key)

    def get_all_latest_states(self, metric_type: MetricType | str) -> list[Metric]:
        """Latest metrics of every object of the given type."""
        prefix = _type_value(metric_type) + ":"
        with self._states_lock:
            return [m for k, m in self._latest.items() if k.startswith(prefix)]

    def append_history(self, metric: Metric) -> None:
        """Append a metric value to its history buffer."""
        key = metric.key()
        with self._history_lock:
            buffer = self._history.get(key)
            if buffer is None:
                buffer = self._history[key] = RingBuffer(RING_BUFFER_SIZE)
        buffer.append(HistoryEntry(timestamp=metric.timestamp, data=metric.data))

    def query_history(
        self,
        metric_type: MetricType | str,
        metric_id: str,
        duration: timedelta | float,
    ) -> list[HistoryEntry]:
        """History of one metric within the last ``duration``."""
        key = f"{_type_value(metric_type)}:{metric_id}"
        with self._history_lock:
            buffer = self._history.get(key)
        if buffer is None:
            return []
        return buffer.query(duration)

    def align_timestamp(self, metric: Metric) -> Metric:
        """Hook for correcting clock skew between sources.

        Timestamps are trusted as set when the metric was created, so the
        metric is returned unchanged.
        """
        return metric

    # -------------------------------------------------------- snapshots

    def _build_snapshot(self) -> StateSnapshot:
        snapshot = StateSnapshot(timestamp=int(time.time()))
        with self._states_lock:
            for metric in self._latest.values():
                if isinstance(metric, NodeMetric):
                    snapshot.nodes.append(metric.data)
                elif isinstance(metric, ContainerMetric):
                    snapshot.containers.append(metric.data)
                elif isinstance(metric, ServiceMetric):
                    snapshot.services.append(metric.data)
                elif isinstance(metric, BusinessMetric):
                    snapshot.business.append(metric.data)
            try:
                payload = json.dumps(snapshot.to_dict())
            except (TypeError, ValueError) as exc:
                raise StateError(f"failed to serialise snapshot: {exc}") from exc
        snapshot_json = payload
        self._last_payload = snapshot_json
        return snapshot

    def save_snapshot(self) -> None:
        """Serialise all latest states and write them to the store, if any."""
        snapshot = self._build_snapshot()
        if self._store is None:
            return
        key = f"{SNAPSHOT_PREFIX}snapshot_{snapshot.timestamp}"
        try:
            self._store.put(key, self._last_payload)
        except Exception as exc:
            raise StateError(f"failed to save snapshot: {exc}") from exc
        logger.info(
            "snapshot saved: %d nodes, %d containers, %d services, %d business",
            len(snapshot.nodes),
            len(snapshot.containers),
            len(snapshot.services),
            len(snapshot.business),
        )

    def load_snapshot(self) -> None:
        """Restore latest states from the newest snapshot in the store."""
        if self._store is None:
            raise StateError("no store configured")
        try:
            pairs = self._store.get_prefix(SNAPSHOT_PREFIX)
        except Exception as exc:
            raise StateError(f"failed to query snapshots: {exc}") from exc
        if not pairs:
            raise StateError("no snapshot found")

        _, value = max(pairs, key=lambda kv: kv[0])
        try:
            snapshot = StateSnapshot.from_dict(json.loads(value))
        except (TypeError, ValueError, AttributeError) as exc:
            raise StateError(f"failed to parse snapshot: {exc}") from exc

        ts = snapshot.timestamp
        restored: list[Metric] = [
            *(NodeMetric(data=n, timestamp=ts) for n in snapshot.nodes),
            *(ContainerMetric(data=c, timestamp=ts) for c in snapshot.containers),
            *(ServiceMetric(data=s, timestamp=ts) for s in snapshot.services),
            *(BusinessMetric(data=b, timestamp=ts) for b in snapshot.business),
        ]
        with self._states_lock:
            for metric in restored:
                self._latest[metric.key()] = metric
        logger.info(
            "snapshot loaded: timestamp=%d, %d nodes, %d containers, "
            "%d services, %d business",
            ts,
            len(snapshot.nodes),
            len(snapshot.containers),
            len(snapshot.services),
            len(snapshot.business),
        )

    def _persist_loop(self) -> None:
        while not self._stop.wait(self._snapshot_interval):
            try:
                self.save_snapshot()
            except StateError as exc:
                logger.warning("background persistence failed: %s", exc)

    def cleanup_expired_history(self) -> None:
        """Delete stored snapshots older than the retention period."""
        if self._store is None:
            return
        cutoff = int(time.time()) - _seconds(HISTORY_RETENTION)
        try:
            pairs = self._store.get_prefix(SNAPSHOT_PREFIX)
        except Exception as exc:
            logger.warning("failed to clean up expired snapshots: %s", exc)
            return
        for key, value in pairs:
            try:
                snapshot = StateSnapshot.from_dict(json.loads(value))
            except (TypeError, ValueError, AttributeError):
                continue
            if snapshot.timestamp < cutoff:
                try:
                    self._store.delete(key)
                except Exception as exc:
                    logger.warning("failed to delete snapshot %s: %s", key, exc)

    def close(self) -> None:
        """Stop background persistence, save a final snapshot, close the store."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
        try:
            self.save_snapshot()
        except StateError as exc:
            logger.warning("failed to save snapshot on close: %s", exc)
        if self._store is not None:
            self._store.close()

    def get_stats(self) -> dict[str, Any]:
        """Counts of stored states, history buffers and tracked alerts."""
        with self._states_lock:
            state_count = len(self._latest)
        with self._history_lock:
            history_count = len(self._history)
        with self._alert_lock:
            alert_count = len(self._alerts)
        return {
            "latest_states": state_count,
            "history_buffers": history_count,
            "active_alerts": alert_count,
            "ring_buffer_size": RING_BUFFER_SIZE,
            "retention": _format_duration(HISTORY_RETENTION),
        }

    # ----------------------------------------------------------- alerts

    def set_alert_state(self, alert_id: str, active: bool) -> None:
        """Mark an alert active or inactive."""
        with self._alert_lock:
            self._alerts[alert_id] = active

    def get_alert_state(self, alert_id: str) -> bool:
        """Whether an alert is active; unknown alerts are inactive."""
        with self._alert_lock:
            return self._alerts.get(alert_id, False)

    def check_and_update_alert_state(
        self, alert_id: str, is_firing: bool
    ) -> tuple[bool, bool]:
        """Record a firing/resolved observation.

        Returns ``(should_send, is_firing)``; ``should_send`` is true when the
        alert is new or its state changed.
        """
        with self._alert_lock:
            previous = self._alerts.get(alert_id)
            if previous is None or previous != is_firing:
                self._alerts[alert_id] = is_firing
                return True, is_firing
            return False, is_firing

    def get_active_alert_count(self) -> int:
        """Number of active alerts."""
        with self._alert_lock:
            return sum(1 for active in self._alerts.values() if active)

    def get_active_alerts(self) -> list[str]:
        """Identifiers of all active alerts."""
        with self._alert_lock:
            return [a for a, active in self._alerts.items() if active]

    def clear_alert_state(self, alert_id: str) -> None:
        """Forget one alert."""
        with self._alert_lock:
            self._alerts.pop(alert_id, None)

    def reset_all_alerts(self) -> None:
        """Forget every alert."""
        with self._alert_lock:
            self._alerts = {}