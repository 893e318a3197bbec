"""Metric and alert data structures shared across the health monitor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class ComponentType(IntEnum):
    """Component identifier carried in the first byte of a business packet.

    A business packet is laid out as: byte 0 component type, bytes 1-2 the
    payload length (big-endian uint16), then the payload.
    """

    RUN_MGR = 0x01
    COMM = 0x02
    POWER = 0x03
    RAIL_CTRL = 0x04
    PAYLOAD = 0x05
    THERMAL = 0x06
    ATT_CTRL = 0x07
    MEASURE = 0x08
    OPTICAL = 0x09
    SENSOR = 0x0A
    ACTUATOR = 0x0B
    TRANSCEIVER = 0x0C
    THRUSTER = 0x0D
    EPS = 0x0E


# ---------------------------------------------------------------- shared

@dataclass
class CPUUsage:
    """CPU usage: overall total plus per-core values."""

    total: float = 0.0
    cores: list[float] | None = None


@dataclass
class NodeNetInfo:
    """Traffic on one network interface of a node."""

    network_name: str = ""
    up_net: float = 0.0
    down_net: float = 0.0


# ---------------------------------------------------------- microservices

@dataclass
class NodeMetrics:
    """Runtime metrics of one node.

    ``cpu_usage`` is a plain number for offline nodes and a structured
    value for online ones, so it is left untyped.
    """

    id: str = ""
    status: str = ""
    memory_total: int = 0
    memory_free: int = 0
    disk_total: float = 0.0
    disk_free: float = 0.0
    cpu_usage: Any = None
    process_count: int = 0
    container_total: int = 0
    container_running: int = 0
    container_ecsm_total: int = 0
    container_ecsm_running: int = 0
    net: list[NodeNetInfo] | None = None


@dataclass
class ContainerMetrics:
    """Runtime metrics of one container."""

    id: str = ""
    status: str = ""
    uptime: int = 0
    started_time: str = ""
    created_time: str = ""
    task_created_time: str = ""
    deploy_status: str = ""
    failed_message: str | None = None
    restart_count: int = 0
    deploy_num: int = 0
    cpu_usage: CPUUsage = field(default_factory=CPUUsage)
    memory_limit: int = 0
    memory_usage: int = 0
    memory_max_usage: int = 0
    size_usage: int = 0
    size_limit: int = 0


@dataclass
class ServiceMetrics:
    """Runtime metrics of one service."""

    id: str = ""
    status: str = ""
    container_status_group: list[str] | None = None
    healthy: bool = False
    factor: int = 0
    policy: str = ""
    instance_online: int = 0
    instance_active: int = 0
    business_check_success: int = 0
    business_check_fail: int = 0


@dataclass
class MicroServiceMetricsSet:
    """All node, container and service metrics gathered in one pass."""

    node_metrics: list[NodeMetrics] = field(default_factory=list)
    container_metrics: list[ContainerMetrics] = field(default_factory=list)
    service_metrics: list[ServiceMetrics] = field(default_factory=list)


# --------------------------------------------------------------- business

@dataclass
class BusinessMetrics:
    """A parsed business packet: component type, time and component data."""

    component_type: int = 0
    timestamp: int = 0
    data: Any = None


@dataclass
class PowerMetrics:
    """Power service: voltages and currents."""

    timestamp: int = 0
    power_module_12v: float = 0.0
    battery_voltage: float = 0.0
    bus_voltage: float = 0.0
    cpu_voltage: float = 0.0
    thermal_ref_voltage: float = 0.0
    bracket_12v_current: float = 0.0
    load_current: float = 0.0
    fault_codes: list[str] | None = None


def _ten_zeros() -> list[float]:
    return [0.0] * 10


@dataclass
class ThermalMetrics:
    """Thermal control service: temperatures and heater switches."""

    timestamp: int = 0
    thermal_temps: list[float] = field(default_factory=_ten_zeros)
    battery_temp1: float = 0.0
    battery_temp2: float = 0.0
    platform_thermal_temp: float = 0.0
    battery_thermal_temp: float = 0.0
    tank_thermal_temp: float = 0.0
    platform_heater_switch: bool = False
    battery_heater_switch: bool = False
    tank_heater_switch: bool = False
    fault_codes: list[str] | None = None


@dataclass
class CommMetrics:
    """Communication service, including serial link counters."""

    timestamp: int = 0
    can_status: int = 0
    serial_status: int = 0
    air_to_air_status: int = 0
    snr: int = 0
    rate: int = 0
    parity_error_count: int = 0
    frame_header_error_count: int = 0
    frame_length_error_count: int = 0
    serial_reset_count: int = 0
    receive_cmd_count: int = 0
    fault_codes: list[str] | None = None


@dataclass
class TransceiverMetrics:
    """Transceiver: encryption states, switch, signal quality and power."""

    timestamp: int = 0
    telemetry_encrypt_status: int = 0
    telecontrol_encrypt_status: int = 0
    transmit_switch: int = 0
    info_channel_snr: int = 0
    receive_rssi: int = 0
    transmit_power: int = 0
    fault_codes: list[str] | None = None


@dataclass
class ActuatorMetrics:
    """Momentum wheel speeds on three axes."""

    timestamp: int = 0
    wheel_speed_x: int = 0
    wheel_speed_y: int = 0
    wheel_speed_z: int = 0
    fault_codes: list[str] | None = None


@dataclass
class ThrusterMetrics:
    """Propulsion: pipeline switch, pressure and fuel level."""

    timestamp: int = 0
    pipeline_switch: int = 0
    pressure_sensor: int = 0
    fuel_level: int = 0
    fault_codes: list[str] | None = None


@dataclass
class RunMgrMetrics:
    """Run management: temperature, voltage and status code."""

    timestamp: int = 0
    temperature: float = 0.0
    voltage: float = 0.0
    status_code: int = 0
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class EPSMetrics:
    """Electrical power supply: voltage and current."""

    timestamp: int = 0
    voltage: float = 0.0
    current: float = 0.0


@dataclass
class SensorMetrics:
    """Sensor accelerations on three axes."""

    timestamp: int = 0
    acc_x: int = 0
    acc_y: int = 0
    acc_z: int = 0


@dataclass
class MeasureMetrics:
    """Measurement sensor value."""

    timestamp: int = 0
    sensor_value: int = 0


@dataclass
class AttCtrlMetrics:
    """Attitude control mode."""

    timestamp: int = 0
    control_mode: int = 0


@dataclass
class OpticalMetrics:
    """Optical device photo current."""

    timestamp: int = 0
    photo_current: int = 0


@dataclass
class PayloadMetrics:
    """Payload work mode."""

    timestamp: int = 0
    work_mode: int = 0


@dataclass
class RailCtrlMetrics:
    """Orbit control mode."""

    timestamp: int = 0
    orbit_mode: int = 0


# ------------------------------------------------------------------ alerts

class AlertSeverity(str, Enum):
    """How serious an alert is."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    """Whether an alert is firing or has been resolved."""

    FIRING = "firing"
    RESOLVED = "resolved"


@dataclass
class AlertEvent:
    """One alert raised, or cleared, for a monitored source.

    A ``status`` of ``None`` counts as firing.
    """

    alert_id: str = ""
    type: str = ""
    status: AlertStatus | None = None
    severity: AlertSeverity = AlertSeverity.INFO
    source: str = ""
    message: str = ""
    timestamp: int = 0
    fault_code: str = ""
    metric_value: float = 0.0
    related_alerts: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_firing(self) -> bool:
        """True when the alert is firing (or carries no status)."""
        return self.status is None or self.status == AlertStatus.FIRING

    def is_resolved(self) -> bool:
        """True when the alert has been resolved."""
        return self.status == AlertStatus.RESOLVED