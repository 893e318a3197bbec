"""Metric wrappers kept by the state manager, and the snapshot format.

Metric identifiers follow the convention node-id / container-id /
service-id / business component type, and each metric is stored under the
key ``"<type>:<id>"``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

from healthmon.models import (
    ActuatorMetrics,
    AttCtrlMetrics,
    BusinessMetrics,
    CommMetrics,
    ComponentType,
    ContainerMetrics,
    CPUUsage,
    EPSMetrics,
    MeasureMetrics,
    NodeMetrics,
    NodeNetInfo,
    OpticalMetrics,
    PayloadMetrics,
    PowerMetrics,
    RailCtrlMetrics,
    RunMgrMetrics,
    SensorMetrics,
    ServiceMetrics,
    ThermalMetrics,
    ThrusterMetrics,
    TransceiverMetrics,
)


class MetricType(str, Enum):
    """Kind of a stored metric."""

    NODE = "node"
    CONTAINER = "container"
    SERVICE = "service"
    BUSINESS = "business"


@dataclass
class Metric(ABC):
    """A metric value together with the time it was taken."""

    data: Any
    timestamp: int = 0

    def id(self) -> str:
        """Unique identifier of the measured object."""
        return self.data.id

    @abstractmethod
    def metric_type(self) -> MetricType:
        """The kind of metric this is."""

    def key(self) -> str:
        """Storage key combining type and identifier."""
        return f"{self.metric_type().value}:{self.id()}"


@dataclass
class NodeMetric(Metric):
    """Wrapper around :class:`NodeMetrics`."""

    data: NodeMetrics

    def metric_type(self) -> MetricType:
        return MetricType.NODE


@dataclass
class ContainerMetric(Metric):
    """Wrapper around :class:`ContainerMetrics`."""

    data: ContainerMetrics

    def metric_type(self) -> MetricType:
        return MetricType.CONTAINER


@dataclass
class ServiceMetric(Metric):
    """Wrapper around :class:`ServiceMetrics`."""

    data: ServiceMetrics

    def metric_type(self) -> MetricType:
        return MetricType.SERVICE


@dataclass
class BusinessMetric(Metric):
    """Wrapper around :class:`BusinessMetrics`, keyed by component type."""

    data: BusinessMetrics

    def id(self) -> str:
        # The component type number, taken as a character code.
        return chr(int(self.data.component_type))

    def metric_type(self) -> MetricType:
        return MetricType.BUSINESS


_COMPONENT_CLASSES: dict[int, type] = {
    ComponentType.RUN_MGR: RunMgrMetrics,
    ComponentType.COMM: CommMetrics,
    ComponentType.POWER: PowerMetrics,
    ComponentType.RAIL_CTRL: RailCtrlMetrics,
    ComponentType.PAYLOAD: PayloadMetrics,
    ComponentType.THERMAL: ThermalMetrics,
    ComponentType.ATT_CTRL: AttCtrlMetrics,
    ComponentType.MEASURE: MeasureMetrics,
    ComponentType.OPTICAL: OpticalMetrics,
    ComponentType.SENSOR: SensorMetrics,
    ComponentType.ACTUATOR: ActuatorMetrics,
    ComponentType.TRANSCEIVER: TransceiverMetrics,
    ComponentType.THRUSTER: ThrusterMetrics,
    ComponentType.EPS: EPSMetrics,
}


def _build(cls: type, data: dict[str, Any]) -> Any:
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


def _node_from_dict(data: dict[str, Any]) -> NodeMetrics:
    node = _build(NodeMetrics, data)
    if node.net is not None:
        node.net = [
            n if isinstance(n, NodeNetInfo) else _build(NodeNetInfo, n)
            for n in node.net
        ]
    return node


def _container_from_dict(data: dict[str, Any]) -> ContainerMetrics:
    container = _build(ContainerMetrics, data)
    if isinstance(container.cpu_usage, dict):
        container.cpu_usage = _build(CPUUsage, container.cpu_usage)
    elif container.cpu_usage is None:
        container.cpu_usage = CPUUsage()
    return container


def _business_from_dict(data: dict[str, Any]) -> BusinessMetrics:
    business = _build(BusinessMetrics, data)
    payload = business.data
    cls = _COMPONENT_CLASSES.get(business.component_type)
    if cls is not None and isinstance(payload, dict) and payload:
        business.data = _build(cls, payload)
    return business


@dataclass
class StateSnapshot:
    """Point-in-time copy of every latest metric, grouped by kind."""

    timestamp: int = 0
    nodes: list[NodeMetrics] = field(default_factory=list)
    containers: list[ContainerMetrics] = field(default_factory=list)
    services: list[ServiceMetrics] = field(default_factory=list)
    business: list[BusinessMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-serialisable form of the snapshot."""
        return {
            "timestamp": self.timestamp,
            "nodes": [asdict(n) for n in self.nodes],
            "containers": [asdict(c) for c in self.containers],
            "services": [asdict(s) for s in self.services],
            "business": [asdict(b) for b in self.business],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StateSnapshot:
        """Rebuild a snapshot from the form produced by :meth:`to_dict`."""
        return cls(
            timestamp=int(data.get("timestamp") or 0),
            nodes=[_node_from_dict(n) for n in data.get("nodes") or []],
            containers=[
                _container_from_dict(c) for c in data.get("containers") or []
            ],
            services=[_build(ServiceMetrics, s) for s in data.get("services") or []],
            business=[_business_from_dict(b) for b in data.get("business") or []],
        )